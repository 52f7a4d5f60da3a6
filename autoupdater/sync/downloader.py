"""
File downloader for the updater.

Executes a download plan one file at a time: back up the file being
replaced, create missing folders, fetch the new content, then write it.
A failure only affects its own file; the rest of the plan still runs.
Uses asyncio + aiohttp for the transfers.
"""

import asyncio
import ssl
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

import aiohttp
import certifi

from ..core.files import copy_to_backup, write_file
from ..core.paths import get_folder_names, resolve_under
from ..core.progress import ProgressTracker
from ..exceptions import BackupError, FetchError, PlanError
from ..manifest.fetch import build_url
from .concurrency import TaskScope
from .download_planner import DownloadPlan, DownloadTask


class HttpTransport:
    """
    Fetches files relative to the server's base URL.

    Used as an async context manager so the session is closed with the run.
    No timeout unless one is configured.
    """

    def __init__(self, base_url: str, timeout: Optional[float] = None):
        self.base_url = base_url
        if timeout:
            self.timeout = aiohttp.ClientTimeout(total=None, sock_connect=timeout, sock_read=timeout)
        else:
            self.timeout = aiohttp.ClientTimeout(total=None)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "HttpTransport":
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(limit=1, ssl=ssl_context)
        self._session = aiohttp.ClientSession(timeout=self.timeout, connector=connector)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._session:
            await self._session.close()
            self._session = None

    async def fetch(self, remote_path: str) -> bytes:
        """
        Get a file's bytes.

        Raises:
            FetchError: on any answer but 200 OK, or if the request fails
        """
        url = build_url(self.base_url, remote_path)
        try:
            async with self._session.get(url, allow_redirects=True) as response:
                if response.status != 200:
                    raise FetchError(f"HTTP {response.status}")
                return await response.read()
        except asyncio.TimeoutError:
            raise FetchError("timed out")
        except aiohttp.ClientError as e:
            raise FetchError(str(e) or type(e).__name__)


@dataclass
class DownloadResult:
    """Result of a single file download."""
    success: bool
    path: str
    message: str
    bytes_downloaded: int = 0


@dataclass
class Outcome:
    """Totals for one executed plan."""
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    failed_paths: List[str] = field(default_factory=list)
    bytes_downloaded: int = 0
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.failed == 0 and not self.cancelled

    def add(self, result: DownloadResult):
        if result.success:
            self.succeeded += 1
            self.bytes_downloaded += result.bytes_downloaded
        else:
            self.failed += 1
            self.failed_paths.append(result.path)


class FileDownloader:
    """
    Runs a DownloadPlan against a local folder.

    Tasks run strictly in plan order. Each fetch is its own unit of work in
    the run's TaskScope and is joined before the file is written, so no two
    tasks ever touch the disk at the same time.
    """

    def __init__(
        self,
        local_root: Path,
        backup_root: Path,
        transport_factory: Callable[[], HttpTransport],
        progress: Optional[ProgressTracker] = None,
    ):
        self.local_root = local_root
        self.backup_root = backup_root
        self.transport_factory = transport_factory
        self.progress = progress or ProgressTracker()

    def _prepare_root(self):
        """Create the local folder if needed."""
        if self.local_root.is_dir():
            return
        self.progress.write(f"  Local folder <{self.local_root}> does not exist, creating")
        try:
            self.local_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PlanError(f"Could not create local folder {self.local_root}: {e}")

    def _failed(self, task: DownloadTask, message: str) -> DownloadResult:
        self.progress.write(f"  ERR: <{task.path}> {message}")
        return DownloadResult(success=False, path=task.path, message=message)

    def _backup(self, task: DownloadTask, destination: Path) -> Path:
        """
        Copy the current local file under the backup folder.

        Raises:
            BackupError: if the copy cannot be completed
        """
        backup_path = resolve_under(self.backup_root, task.path)
        self.progress.write(f"  Backing up <{task.path}> to <{backup_path}>")
        try:
            copy_to_backup(destination, backup_path)
        except OSError as e:
            raise BackupError(f"backup failed: {e}")
        return backup_path

    def _ensure_folders(self, task: DownloadTask):
        """Create every missing intermediate folder of the destination."""
        for folder in get_folder_names(task.path):
            folder_path = resolve_under(self.local_root, folder)
            if not folder_path.is_dir():
                self.progress.write(f"  Creating folder <{folder}>")
                folder_path.mkdir(exist_ok=True)

    async def _download_file_async(
        self,
        task: DownloadTask,
        transport: HttpTransport,
        scope: TaskScope,
    ) -> DownloadResult:
        """Back up, fetch and write one file. Never raises for file errors."""
        try:
            return await self._process_task(task, transport, scope)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            return self._failed(task, f"{type(e).__name__}: {e}")

    async def _process_task(
        self,
        task: DownloadTask,
        transport: HttpTransport,
        scope: TaskScope,
    ) -> DownloadResult:
        destination = resolve_under(self.local_root, task.path)

        if destination.is_dir():
            return self._failed(task, "exists locally as a folder")

        if task.requires_backup:
            try:
                self._backup(task, destination)
            except BackupError as e:
                return self._failed(task, str(e))

        try:
            self._ensure_folders(task)
        except OSError as e:
            return self._failed(task, f"could not create folder: {e}")

        handle = scope.spawn(transport.fetch(task.remote_path), name=task.path)
        try:
            data = await scope.wait_for(handle)
        except FetchError as e:
            return self._failed(task, f"fetch failed: {e}")

        try:
            write_file(destination, data)
        except OSError as e:
            return self._failed(task, f"write failed: {e}")

        return DownloadResult(
            success=True,
            path=task.path,
            message=f"OK: {task.path}",
            bytes_downloaded=len(data),
        )

    async def execute_async(self, plan: DownloadPlan) -> Outcome:
        """
        Execute a plan inside its own TaskScope.

        Raises:
            PlanError: if the local folder cannot be created
        """
        self._prepare_root()
        outcome = Outcome(skipped=plan.skipped)
        if not plan:
            return outcome

        async with self.transport_factory() as transport, TaskScope("download") as scope:
            for task in plan.tasks:
                if self.progress.cancelled:
                    outcome.cancelled = True
                    break

                self.progress.write(f"  Downloading <{task.path}>...")
                result = await self._download_file_async(task, transport, scope)
                if result.success:
                    self.progress.write(f"  <{task.path}> downloaded")
                self.progress.file_completed()
                outcome.add(result)

        return outcome

    def execute(self, plan: DownloadPlan) -> Outcome:
        """Execute a plan (blocking)."""
        return asyncio.run(self.execute_async(plan))
