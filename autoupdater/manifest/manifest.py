"""
Manifest classes for the updater.

A manifest maps each tree-relative file path to its MD5. One is built from
a scan of the local folder, the other from the server's file listing, and
the two are compared to decide what to download.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional

from ..core.files import compute_md5, scan_files
from ..core.paths import normalize_folder, normalize_path, relative_posix, strip_prefix
from ..exceptions import ParseError, ScanError


@dataclass(frozen=True)
class FileEntry:
    """A single file in a manifest."""
    path: str
    md5: str
    remote_path: str = ""  # Path as listed by the server (used to fetch)


class Manifest:
    """
    Ordered mapping of path -> FileEntry.

    Iteration follows insertion order, so a manifest built from the server
    listing iterates in listing order.
    """

    def __init__(self, entries: Iterable[FileEntry] = ()):
        self._entries: Dict[str, FileEntry] = {}
        for entry in entries:
            self.add(entry)

    def add(self, entry: FileEntry):
        """Add an entry. Paths are unique within a manifest."""
        if entry.path in self._entries:
            raise ValueError(f"Duplicate path in manifest: {entry.path}")
        self._entries[entry.path] = entry

    def get(self, path: str) -> Optional[FileEntry]:
        return self._entries.get(path)

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def __iter__(self) -> Iterator[FileEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def paths(self) -> list:
        return list(self._entries)


def build_local(root: Path, skip: Iterable[Path] = ()) -> Manifest:
    """
    Build a manifest from the files under a local folder.

    A folder that does not exist yet gives an empty manifest; it is created
    before anything is downloaded into it.

    Args:
        root: Local tree root
        skip: Folders under root to leave out (the backup folder)

    Raises:
        ScanError: if root exists but cannot be read, or two files map to
            the same normalized path
    """
    if not root.exists():
        return Manifest()

    manifest = Manifest()
    for file_path in scan_files(root, skip=skip):
        rel_path = normalize_path(relative_posix(file_path, root))
        if rel_path in manifest:
            raise ScanError(f"Two local files map to the same path: {rel_path}")
        manifest.add(FileEntry(path=rel_path, md5=compute_md5(file_path), remote_path=rel_path))
    return manifest


def build_remote(listing, data_folder: str, on_dropped=None) -> Manifest:
    """
    Build a manifest from the server's file listing.

    The listing is a JSON array of {"path", "md5"} objects whose paths start
    with the server's data folder; the data folder is stripped so the paths
    line up with the local tree.

    Args:
        listing: Parsed listing document
        data_folder: Server data folder prefix
        on_dropped: Optional callback(path) for entries outside data_folder

    Raises:
        ParseError: if the listing is malformed
    """
    if not isinstance(listing, list):
        raise ParseError("File listing must be a JSON array")

    try:
        prefix = normalize_folder(data_folder)
    except ValueError as e:
        raise ParseError(f"Invalid dataFolder '{data_folder}': {e}")
    manifest = Manifest()

    for i, item in enumerate(listing):
        if not isinstance(item, dict):
            raise ParseError(f"Listing entry {i} is not an object")
        raw_path = item.get("path")
        md5 = item.get("md5")
        if not isinstance(raw_path, str) or not isinstance(md5, str):
            raise ParseError(f"Listing entry {i} needs string 'path' and 'md5'")

        try:
            full_path = normalize_path(raw_path)
        except ValueError as e:
            raise ParseError(f"Listing entry {i}: {e}")

        rel_path = strip_prefix(full_path, prefix)
        if rel_path is None:
            if on_dropped:
                on_dropped(raw_path)
            continue

        if rel_path in manifest:
            raise ParseError(f"Listing contains {rel_path} more than once")
        manifest.add(FileEntry(path=rel_path, md5=md5.strip().lower(), remote_path=full_path))

    return manifest
