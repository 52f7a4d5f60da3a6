"""
SSV Auto Updater - keep a local folder in sync with a server-published tree.

The server publishes a JSON listing of its files with MD5 checksums; only
files that are missing or different locally get downloaded, and anything
that gets overwritten is backed up first.

Import from submodules directly:
    from autoupdater.config import LocalConfig
    from autoupdater.manifest import build_local, build_remote
    from autoupdater.sync import Updater
"""

__version__ = "2.0.0"
