"""
Shared utilities for the updater.
"""

import re
import sys
from datetime import datetime
from pathlib import Path


class TeeOutput:
    """Write to both stdout and a log file, timestamping each logged line."""

    # Patterns to skip in log file
    _SKIP_PATTERNS = [
        r'^\s*$',  # Blank lines
    ]

    def __init__(self, log_path: Path, terminal=None):
        self.terminal = terminal or sys.stdout
        self.log_file = open(log_path, "a", encoding="utf-8")
        self._skip_regex = re.compile('|'.join(self._SKIP_PATTERNS))
        self._line_buffer = ""
        # Write session header
        self.log_file.write(f"\n{'='*60}\n")
        self.log_file.write(f"Session started: {datetime.now().isoformat()}\n")
        self.log_file.write(f"{'='*60}\n\n")
        self.log_file.flush()

    def write(self, message):
        self.terminal.write(message)

        # Strip ANSI escape codes
        clean = re.sub(r'\x1b\[[0-9;]*[mKHJ]', '', message)

        # Buffer partial lines
        self._line_buffer += clean

        while '\n' in self._line_buffer:
            line, self._line_buffer = self._line_buffer.split('\n', 1)
            if not self._skip_regex.search(line):
                timestamp = datetime.now().strftime("[%H:%M:%S]")
                self.log_file.write(f"{timestamp} {line.rstrip()}\n")

        self.log_file.flush()

    def flush(self):
        self.terminal.flush()
        self.log_file.flush()

    def close(self):
        # Flush any remaining buffer
        if self._line_buffer.strip():
            timestamp = datetime.now().strftime("[%H:%M:%S]")
            self.log_file.write(f"{timestamp} {self._line_buffer.rstrip()}\n")
        self._line_buffer = ""
        self.log_file.close()
