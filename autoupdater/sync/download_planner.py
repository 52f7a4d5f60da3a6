"""
Download planning for the updater.

Determines what files need to be downloaded by comparing the server manifest
to the local one under the server's exclusion and retention rules.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple

from ..config import RemoteConfig
from ..exceptions import ParseError
from ..core.paths import is_under_folder, normalize_folder, normalize_path
from ..manifest import Manifest


@dataclass(frozen=True)
class ExclusionRules:
    """Server-declared paths that are never downloaded or never overwritten."""
    excluded_files: FrozenSet[str] = frozenset()
    excluded_folders: Tuple[str, ...] = ()
    only_new_files: FrozenSet[str] = frozenset()

    def __post_init__(self):
        # Stored normalized
        object.__setattr__(self, "excluded_files", frozenset(normalize_path(p) for p in self.excluded_files))
        # An empty folder rule would cover the whole tree; it is dropped
        folders = {normalize_folder(p) for p in self.excluded_folders} - {""}
        object.__setattr__(self, "excluded_folders", tuple(sorted(folders)))
        object.__setattr__(self, "only_new_files", frozenset(normalize_path(p) for p in self.only_new_files))

    @classmethod
    def from_config(cls, remote: RemoteConfig) -> "ExclusionRules":
        """
        Raises:
            ParseError: if a rule is not a valid relative path
        """
        try:
            return cls(
                excluded_files=frozenset(remote.excluded_files),
                excluded_folders=tuple(remote.excluded_folders),
                only_new_files=frozenset(remote.only_new_files),
            )
        except ValueError as e:
            raise ParseError(f"Invalid rule in remote config: {e}")

    def is_excluded(self, path: str) -> Optional[str]:
        """
        Check a normalized path against the exclusions.

        Returns:
            "file" or "folder" naming the matching rule, or None
        """
        if path in self.excluded_files:
            return "file"
        if any(is_under_folder(path, folder) for folder in self.excluded_folders):
            return "folder"
        return None

    def is_only_new(self, path: str) -> bool:
        return path in self.only_new_files


@dataclass(frozen=True)
class DownloadTask:
    """A file to be downloaded."""
    path: str
    remote_path: str = ""  # Path as listed by the server (defaults to path)
    exists_locally: bool = False
    requires_backup: bool = False  # Existing file must be copied aside first

    def __post_init__(self):
        if self.requires_backup and not self.exists_locally:
            raise ValueError(f"{self.path}: cannot back up a file that does not exist locally")
        if not self.remote_path:
            object.__setattr__(self, "remote_path", self.path)


@dataclass(frozen=True)
class DownloadPlan:
    """
    Ordered download tasks for one run, plus what was left out and why.

    excluded holds (path, "file" | "folder") pairs; current holds paths whose
    MD5 already matches; retained holds only-new paths that differ but exist.
    """
    tasks: Tuple[DownloadTask, ...] = ()
    excluded: Tuple[Tuple[str, str], ...] = ()
    current: Tuple[str, ...] = ()
    retained: Tuple[str, ...] = ()
    # Local files the server does not list; never touched
    untracked: Tuple[str, ...] = field(default=(), compare=False)

    @property
    def skipped(self) -> int:
        """Server entries that produced no task."""
        return len(self.excluded) + len(self.current) + len(self.retained)

    @property
    def paths(self) -> Tuple[str, ...]:
        return tuple(task.path for task in self.tasks)

    def __len__(self) -> int:
        return len(self.tasks)

    def __bool__(self) -> bool:
        return bool(self.tasks)


def plan_downloads(local: Manifest, remote: Manifest, rules: ExclusionRules) -> DownloadPlan:
    """
    Plan which files need to be downloaded.

    For each server entry, in listing order:
    - excluded file or folder: never downloaded
    - missing locally: downloaded
    - present with the same MD5: nothing to do
    - present with a different MD5: downloaded over a backup, unless the path
      is only-new, in which case the local copy is kept

    Args:
        local: Manifest of the local tree
        remote: Manifest of the server listing
        rules: Server exclusion and retention rules

    Returns:
        DownloadPlan (same inputs always give the same plan)
    """
    tasks = []
    excluded = []
    current = []
    retained = []

    for entry in remote:
        reason = rules.is_excluded(entry.path)
        if reason:
            excluded.append((entry.path, reason))
            continue

        local_entry = local.get(entry.path)
        if local_entry is None:
            tasks.append(DownloadTask(path=entry.path, remote_path=entry.remote_path))
        elif local_entry.md5 == entry.md5:
            current.append(entry.path)
        elif rules.is_only_new(entry.path):
            retained.append(entry.path)
        else:
            tasks.append(DownloadTask(
                path=entry.path,
                remote_path=entry.remote_path,
                exists_locally=True,
                requires_backup=True,
            ))

    untracked = tuple(path for path in local.paths if path not in remote)

    return DownloadPlan(
        tasks=tuple(tasks),
        excluded=tuple(excluded),
        current=tuple(current),
        retained=tuple(retained),
        untracked=untracked,
    )
