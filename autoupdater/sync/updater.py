"""
Update orchestration.

Coordinates one run: fetch the server documents and scan the local folder
concurrently, plan the downloads, execute the plan and report.
"""

import asyncio
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from ..config import LocalConfig, RemoteConfig
from ..core.formatting import format_duration, format_size, pluralize
from ..core.progress import ProgressTracker
from ..manifest import Manifest, build_local, build_remote, fetch_remote_config, fetch_remote_listing
from .concurrency import TaskScope
from .download_planner import DownloadPlan, ExclusionRules, plan_downloads
from .downloader import FileDownloader, HttpTransport, Outcome


@dataclass(frozen=True)
class ServerData:
    """Everything the plan is computed from."""
    remote_config: RemoteConfig
    rules: ExclusionRules
    local: Manifest
    remote: Manifest
    dropped: tuple = ()  # Listed paths outside the data folder


class Updater:
    """Runs the update sequence for one LocalConfig."""

    def __init__(
        self,
        config: LocalConfig,
        transport_factory: Optional[Callable[[], HttpTransport]] = None,
        progress: Optional[ProgressTracker] = None,
        verbose: bool = False,
    ):
        self.config = config
        self.transport_factory = transport_factory or (
            lambda: HttpTransport(config.base_url, timeout=config.timeout)
        )
        self.progress = progress or ProgressTracker()
        self.verbose = verbose

    def _scan_skip(self) -> List[Path]:
        """Folders under the local root that are not part of the tree."""
        local = self.config.local_folder.resolve()
        backup = self.config.backup_folder.resolve()
        if backup == local or local in backup.parents:
            return [backup]
        return []

    async def _load_server_data_async(self) -> ServerData:
        async with TaskScope("server data") as scope:
            config_handle = scope.spawn_blocking(fetch_remote_config, self.config, name="remote config")
            listing_handle = scope.spawn_blocking(fetch_remote_listing, self.config, name="remote listing")
            local_handle = scope.spawn_blocking(
                build_local, self.config.local_folder, self._scan_skip(), name="local scan"
            )

            remote_config = await scope.wait_for(config_handle)
            listing = await scope.wait_for(listing_handle)
            local = await scope.wait_for(local_handle)

        dropped = []
        rules = ExclusionRules.from_config(remote_config)
        remote = build_remote(listing, remote_config.data_folder, on_dropped=dropped.append)
        return ServerData(remote_config, rules, local, remote, tuple(dropped))

    def load_server_data(self) -> ServerData:
        """
        Fetch the remote config and listing and scan the local folder.

        Raises:
            FetchError, ParseError, ScanError: nothing can be planned
        """
        print("Getting data from server...")
        data = asyncio.run(self._load_server_data_async())
        self.display_server_data(data)
        return data

    def display_server_data(self, data: ServerData):
        """Print what the server excludes and, when verbose, both file lists."""
        for path in data.remote_config.excluded_files:
            print(f"  Server excluded file: <{path}>")
        for path in data.remote_config.excluded_folders:
            print(f"  Server excluded folder: <{path}>")
        for path in data.dropped:
            print(f"  <{path}> is outside <{data.remote_config.data_folder}>, ignored")

        if self.verbose:
            for entry in data.remote:
                print(f"  Server file: {entry.path} {entry.md5}")
            for entry in data.local:
                print(f"  Local file: {entry.path} {entry.md5}")

        print(f"  {pluralize(len(data.remote), 'file')} on server, {len(data.local)} local")

    def plan(self, data: ServerData) -> DownloadPlan:
        """Compute the download plan and print every decision."""
        plan = plan_downloads(data.local, data.remote, data.rules)

        for path, reason in plan.excluded:
            if reason == "folder":
                print(f"  Folder of <{path}> excluded")
            else:
                print(f"  <{path}> excluded")
        if self.verbose:
            for path in plan.current:
                print(f"  <{path}> matches")
            for path in plan.untracked:
                print(f"  <{path}> is not on the server, left alone")
        for path in plan.retained:
            print(f"  <{path}> doesn't match, but won't be downloaded because it exists")
        for task in plan.tasks:
            if task.exists_locally:
                print(f"  <{task.path}> doesn't match, must download")
            else:
                print(f"  <{task.path}> doesn't exist locally, must download")

        return plan

    def download(self, plan: DownloadPlan) -> Outcome:
        """
        Execute a plan. The first Ctrl-C stops after the current file;
        a second one aborts immediately.
        """
        downloader = FileDownloader(
            self.config.local_folder,
            self.config.backup_folder,
            self.transport_factory,
            progress=self.progress,
        )

        original_handler = None

        def handle_interrupt(signum, frame):
            if not self.progress.cancelled:
                self.progress.cancel()
                print("\n  Cancelling after the current file...")
            signal.signal(signal.SIGINT, original_handler or signal.default_int_handler)

        try:
            original_handler = signal.signal(signal.SIGINT, handle_interrupt)
        except ValueError:
            # Not on the main thread
            pass

        try:
            return downloader.execute(plan)
        finally:
            if original_handler is not None:
                signal.signal(signal.SIGINT, original_handler)

    def report(self, outcome: Outcome, elapsed: float):
        print()
        print(
            f"Finished: {outcome.succeeded} downloaded, {outcome.skipped} skipped, "
            f"{outcome.failed} failed ({format_size(outcome.bytes_downloaded)} in {format_duration(elapsed)})"
        )
        for path in outcome.failed_paths:
            print(f"  Failed: <{path}>")
        if outcome.cancelled:
            print("  Cancelled before the plan finished.")

    def run(self, dry_run: bool = False) -> Outcome:
        """
        Run the whole update sequence.

        Args:
            dry_run: Stop after printing the plan

        Returns:
            Outcome of the run (nothing downloaded on a dry run)
        """
        start = time.time()
        data = self.load_server_data()
        plan = self.plan(data)

        if dry_run:
            print(f"\nDry run: {pluralize(len(plan), 'file')} would be downloaded.")
            return Outcome(skipped=plan.skipped)

        if plan:
            print(f"\nDownloading {pluralize(len(plan), 'file')}...")
        outcome = self.download(plan)
        self.report(outcome, time.time() - start)
        return outcome
