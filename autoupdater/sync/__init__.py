"""
Sync operations module.

Handles download planning, scoped concurrency, file downloading and the
update sequence.
"""

from .concurrency import TaskScope, TaskHandle
from .download_planner import DownloadTask, DownloadPlan, ExclusionRules, plan_downloads
from .downloader import FileDownloader, HttpTransport, DownloadResult, Outcome
from .updater import Updater, ServerData

__all__ = [
    # Concurrency
    "TaskScope",
    "TaskHandle",
    # Download planning
    "DownloadTask",
    "DownloadPlan",
    "ExclusionRules",
    "plan_downloads",
    # Downloader
    "FileDownloader",
    "HttpTransport",
    "DownloadResult",
    "Outcome",
    # Orchestration
    "Updater",
    "ServerData",
]
