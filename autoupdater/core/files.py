"""
File system utilities for the updater.
"""

import hashlib
import os
import shutil
from pathlib import Path
from typing import Iterable, List

from ..exceptions import ScanError
from .constants import CHUNK_SIZE


def scan_files(root: Path, skip: Iterable[Path] = ()) -> List[Path]:
    """
    Recursively list the files under root.

    Args:
        root: Directory to scan
        skip: Directories whose contents are left out (e.g. the backup folder)

    Returns:
        Sorted list of file paths

    Raises:
        ScanError: if root is not a readable directory
    """
    if not root.is_dir():
        raise ScanError(f"Not a directory: {root}")

    skipped = {Path(p).resolve() for p in skip}
    files = []

    def on_error(e: OSError):
        raise ScanError(f"Cannot read {e.filename}: {e.strerror}") from e

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        current = Path(dirpath)
        dirnames[:] = sorted(
            d for d in dirnames if (current / d).resolve() not in skipped
        )
        files.extend(current / name for name in filenames)

    return sorted(files)


def compute_md5(path: Path) -> str:
    """Lowercase hex MD5 of a file's content."""
    md5 = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            md5.update(chunk)
    return md5.hexdigest()


def write_file(path: Path, data: bytes):
    """Write bytes to path, flushed to disk before returning."""
    with open(path, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())


def copy_to_backup(source: Path, destination: Path):
    """Copy a file's bytes to destination, creating missing parent folders."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    with open(source, "rb") as src, open(destination, "wb") as dst:
        shutil.copyfileobj(src, dst, CHUNK_SIZE)
        dst.flush()
        os.fsync(dst.fileno())
