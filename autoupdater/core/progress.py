"""
Thread-safe progress output.
"""

import threading


class ProgressTracker:
    """Serializes progress lines written from worker threads and tasks."""

    def __init__(self, quiet: bool = False):
        self.lock = threading.Lock()
        self.quiet = quiet
        self._cancelled = False
        self.completed = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self):
        """Signal cancellation."""
        self._cancelled = True

    def write(self, msg: str):
        """Write a message (thread-safe)."""
        if self.quiet:
            return
        with self.lock:
            print(msg)

    def file_completed(self):
        with self.lock:
            self.completed += 1
