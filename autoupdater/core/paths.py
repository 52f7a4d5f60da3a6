"""
Canonical relative paths for the updater.

Every path that is compared, matched or joined onto a root goes through
normalize_path first: forward slashes only, no empty or "." components,
no leading or trailing slash. Folder matching is done on whole components,
so "docs" covers "docs/a.txt" but not "docsx/a.txt".
"""

from pathlib import Path
from typing import List, Optional


def _split(path: str) -> List[str]:
    parts = []
    for part in path.replace("\\", "/").split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            raise ValueError(f"Path escapes its root: {path!r}")
        parts.append(part)
    return parts


def normalize_path(path: str) -> str:
    """
    Normalize a tree-relative file path.

    Raises:
        ValueError: if the path contains ".." or has no components
    """
    parts = _split(path)
    if not parts:
        raise ValueError(f"Empty path: {path!r}")
    return "/".join(parts)


def normalize_folder(prefix: str) -> str:
    """Normalize a folder prefix. The empty string stands for the tree root."""
    return "/".join(_split(prefix))


def is_under_folder(path: str, folder: str) -> bool:
    """Check if a normalized path lies inside a normalized folder."""
    if not folder:
        return True
    return path == folder or path.startswith(folder + "/")


def strip_prefix(path: str, prefix: str) -> Optional[str]:
    """
    Remove a folder prefix from a normalized path.

    Returns:
        The remainder, or None if the path is not strictly inside the prefix
    """
    if not prefix:
        return path
    if not path.startswith(prefix + "/"):
        return None
    return path[len(prefix) + 1:]


def get_folder_names(path: str) -> List[str]:
    """
    Get every intermediate folder of a relative file path, shallowest first.

    "a/b/c.txt" -> ["a", "a/b"]
    """
    parts = normalize_path(path).split("/")[:-1]
    return ["/".join(parts[:i]) for i in range(1, len(parts) + 1)]


def relative_posix(path: Path, base: Path) -> str:
    """Get the relative path as a posix-style string."""
    return path.relative_to(base).as_posix()


def resolve_under(root: Path, rel_path: str) -> Path:
    """Join a normalized relative path onto a root directory."""
    return root.joinpath(*normalize_path(rel_path).split("/"))
