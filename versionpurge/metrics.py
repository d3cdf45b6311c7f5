"""
Purge Metrics Collection

Collects call counts and timings during a purge run for the final summary.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from versionpurge.models import DeletePhase, ListingPage, PaginationCursor, PurgeResult


@dataclass
class PurgeMetrics:
    """
    Metrics collected during a purge run.

    Implements the observer interface, so it can be passed to the orchestrator
    directly or alongside a LoggingObserver.
    """

    # Call statistics
    list_calls: int = 0
    pages: int = 0
    empty_pages: int = 0
    delete_rounds: int = 0

    # Deletion statistics
    versions_deleted: int = 0
    delete_markers_deleted: int = 0

    # Performance metrics (in seconds)
    time_total: float = 0.0

    error: Optional[str] = None
    clock: Callable[[], float] = field(default=time.perf_counter, repr=False)
    _started_at: Optional[float] = field(default=None, repr=False)

    def on_list(self, cursor: PaginationCursor) -> None:
        if self._started_at is None:
            self._started_at = self.clock()
        self.list_calls += 1

    def on_page(self, page: ListingPage) -> None:
        self.pages += 1
        if page.is_empty:
            self.empty_pages += 1

    def on_deleted(self, phase: DeletePhase, count: int) -> None:
        self.delete_rounds += 1
        if phase is DeletePhase.VERSIONS:
            self.versions_deleted += count
        else:
            self.delete_markers_deleted += count

    def on_finished(self, result: PurgeResult) -> None:
        if self._started_at is not None:
            self.time_total = self.clock() - self._started_at
        if result.error is not None:
            self.error = type(result.error).__name__

    @property
    def objects_per_second(self) -> float:
        if self.time_total <= 0:
            return 0.0
        return (self.versions_deleted + self.delete_markers_deleted) / self.time_total

    def to_dict(self) -> dict[str, Any]:
        """Convert metrics to dictionary for serialization."""
        return {
            "calls": {
                "list": self.list_calls,
                "delete_rounds": self.delete_rounds,
            },
            "pages": {
                "total": self.pages,
                "empty": self.empty_pages,
            },
            "deleted": {
                "versions": self.versions_deleted,
                "delete_markers": self.delete_markers_deleted,
            },
            "performance": {
                "total_seconds": round(self.time_total, 3),
                "objects_per_second": round(self.objects_per_second, 1),
            },
            "error": self.error,
        }


__all__ = ["PurgeMetrics"]
