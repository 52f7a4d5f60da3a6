"""
Exceptions raised by the updater.

Fatal errors (configuration, remote documents, local scan) abort the run
before anything is downloaded. Per-file errors (backup, fetch) are caught by
the downloader and reported in the run outcome.
"""


class UpdaterError(Exception):
    """Base exception for all updater errors."""


class ConfigError(UpdaterError):
    """Raised when the local configuration file is missing or malformed."""


class ScanError(UpdaterError):
    """Raised when the local tree cannot be scanned."""


class ParseError(UpdaterError):
    """Raised when a remote document is not what the updater expects."""


class FetchError(UpdaterError):
    """Raised when the server does not answer a request with success."""


class BackupError(UpdaterError):
    """Raised when an existing file cannot be backed up before overwrite."""


class PlanError(UpdaterError):
    """Raised when a download plan cannot be executed at all."""
