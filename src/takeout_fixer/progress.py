"""Log-based progress reporting for a fix run."""

import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .process import FileOutcome, ProcessStats

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Counts handled media files and logs a status line with ETA.

    A line is logged every ``log_interval`` files and once more when the
    last file is done. Each line carries how many files got metadata and
    how many failed so far.
    """

    def __init__(self, total_files: int, log_interval: int = 100):
        self.total_files = total_files
        self.log_interval = max(1, log_interval)

        self.done = 0
        self.with_metadata = 0
        self.failed = 0
        self.start_time = time.monotonic()

    def advance(self, outcome: "FileOutcome") -> None:
        """Account for one handled media file."""
        self.done += 1
        if not outcome.ok:
            self.failed += 1
        elif outcome.had_metadata:
            self.with_metadata += 1

        if self.done % self.log_interval == 0 or self.done == self.total_files:
            self._log_status()

    @property
    def percentage(self) -> float:
        if self.total_files <= 0:
            return 0.0
        return self.done / self.total_files * 100

    def eta_seconds(self) -> float:
        """Remaining time at the average rate so far."""
        elapsed = time.monotonic() - self.start_time
        remaining = self.total_files - self.done
        if self.done == 0 or elapsed <= 0 or remaining <= 0:
            return 0.0
        return remaining * elapsed / self.done

    def _log_status(self) -> None:
        logger.info(
            f"Progress: {self.done}/{self.total_files} ({self.percentage:.1f}%) - "
            f"{self.with_metadata} with metadata, {self.failed} failed - "
            f"ETA: {format_duration(self.eta_seconds())}"
        )

    def log_final_summary(self, stats: "ProcessStats") -> None:
        """Log totals for the whole run."""
        elapsed = time.monotonic() - self.start_time
        logger.info(
            f"Processing complete: {self.done}/{self.total_files} files in {format_duration(elapsed)} "
            f"({stats.metadata_applied} with metadata, {stats.errors} errors, "
            f"{stats.unused_metadata_files} unused sidecars)"
        )


def format_duration(seconds: float) -> str:
    """Format seconds as e.g. ``2h 15m 30s``."""
    if seconds <= 0:
        return "0s"

    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)
