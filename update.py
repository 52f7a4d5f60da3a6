#!/usr/bin/env python3
"""
SSV Auto Updater - bring a local folder up to date with the server.

Reads updaterConfig.json next to the app, compares the local folder to the
server's file listing and downloads whatever is new or changed.
"""

import argparse
import sys
from pathlib import Path

from autoupdater import __version__
from autoupdater.config import LocalConfig
from autoupdater.core.constants import LOCAL_CONFIG_FILE, LOG_FILE
from autoupdater.exceptions import UpdaterError
from autoupdater.sync import Updater
from autoupdater.utils import TeeOutput

# Exit codes
EXIT_OK = 0
EXIT_FATAL = 1
EXIT_FAILED_FILES = 2
EXIT_CANCELLED = 130


def get_app_dir() -> Path:
    """Get the directory where the app is located (for user-writable files)."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent
    return Path(__file__).parent


def run(config_path: Path, dry_run: bool = False, verbose: bool = False) -> int:
    """Run one update and map the result to an exit code."""
    try:
        config = LocalConfig.load(config_path)
        print(f"Host: <{config.base_url}>")
        print(f"Local folder: <{config.local_folder}>")
        outcome = Updater(config, verbose=verbose).run(dry_run=dry_run)
    except UpdaterError as e:
        print(f"\nError: {e}")
        return EXIT_FATAL

    if outcome.cancelled:
        return EXIT_CANCELLED
    if outcome.failed:
        return EXIT_FAILED_FILES
    return EXIT_OK


def main() -> int:
    """Entry point."""
    parser = argparse.ArgumentParser(
        description="SSV Auto Updater - download new and changed files from the server"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to the config file (default: {LOCAL_CONFIG_FILE} next to the app)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be downloaded without downloading"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Also list server and local files and files that already match"
    )
    parser.add_argument(
        "--no-log",
        action="store_true",
        help=f"Do not append output to {LOG_FILE}"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args()

    config_path = args.config or get_app_dir() / LOCAL_CONFIG_FILE

    tee = None
    if not args.no_log:
        tee = TeeOutput(config_path.parent / LOG_FILE)
        sys.stdout = tee

    try:
        return run(config_path, dry_run=args.dry_run, verbose=args.verbose)
    except KeyboardInterrupt:
        print("\n\nCancelled by user.")
        return EXIT_CANCELLED
    finally:
        if tee:
            sys.stdout = tee.terminal
            tee.close()


if __name__ == "__main__":
    sys.exit(main())
