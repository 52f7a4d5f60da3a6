"""
Manifest management for the updater.

The server publishes its file tree with checksums as a JSON listing; the
local tree is scanned into the same shape so the two can be compared.
"""

from .manifest import Manifest, FileEntry, build_local, build_remote
from .fetch import fetch_json, fetch_remote_config, fetch_remote_listing, build_url

__all__ = [
    # Core manifest
    "Manifest",
    "FileEntry",
    "build_local",
    "build_remote",
    # Remote documents
    "fetch_json",
    "fetch_remote_config",
    "fetch_remote_listing",
    "build_url",
]
