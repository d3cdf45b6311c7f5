"""
Progress reporting for the purge engine.

The orchestrator never writes to a global log sink; it reports to an injected
observer. ``LoggingObserver`` forwards events to a loguru logger.
"""

from __future__ import annotations

from typing import Any, Iterable, Protocol

from loguru import logger as _default_logger

from versionpurge.exceptions import PurgeError
from versionpurge.models import DeletePhase, ListingPage, PaginationCursor, PurgeResult


class PurgeObserver(Protocol):
    def on_list(self, cursor: PaginationCursor) -> None:
        ...

    def on_page(self, page: ListingPage) -> None:
        ...

    def on_deleted(self, phase: DeletePhase, count: int) -> None:
        ...

    def on_finished(self, result: PurgeResult) -> None:
        ...


class NullObserver:
    def on_list(self, cursor: PaginationCursor) -> None:
        pass

    def on_page(self, page: ListingPage) -> None:
        pass

    def on_deleted(self, phase: DeletePhase, count: int) -> None:
        pass

    def on_finished(self, result: PurgeResult) -> None:
        pass


class LoggingObserver:
    def __init__(self, bucket: str, logger: Any = None) -> None:
        self.bucket = bucket
        self.logger = (logger or _default_logger).bind(bucket=bucket)

    def on_list(self, cursor: PaginationCursor) -> None:
        if cursor.is_exhausted:
            self.logger.info("Calling ListObjectVersions API")
        else:
            self.logger.info("Calling ListObjectVersions API:{}", cursor.describe())

    def on_page(self, page: ListingPage) -> None:
        self.logger.info(
            "Retrieved {} versions and {} deleteMarkers from s3://{}",
            len(page.versions),
            len(page.delete_markers),
            self.bucket,
        )

    def on_deleted(self, phase: DeletePhase, count: int) -> None:
        label = "versions" if phase is DeletePhase.VERSIONS else "delete markers"
        self.logger.info("Deleted {} {}", count, label)

    def on_finished(self, result: PurgeResult) -> None:
        if result.error is None:
            self.logger.info(
                "Purge of s3://{} finished: {} versions, {} delete markers",
                self.bucket,
                result.deleted_versions,
                result.deleted_delete_markers,
            )
            return
        error: PurgeError = result.error
        self.logger.error(
            "Purge of s3://{} aborted after {} versions, {} delete markers: {type} - {message}",
            self.bucket,
            result.deleted_versions,
            result.deleted_delete_markers,
            type=type(error).__name__,
            message=error.message,
            details=error.details,
        )


class CompositeObserver:
    """Fans every event out to several observers, in order."""

    def __init__(self, observers: Iterable[PurgeObserver]) -> None:
        self.observers = list(observers)

    def on_list(self, cursor: PaginationCursor) -> None:
        for observer in self.observers:
            observer.on_list(cursor)

    def on_page(self, page: ListingPage) -> None:
        for observer in self.observers:
            observer.on_page(page)

    def on_deleted(self, phase: DeletePhase, count: int) -> None:
        for observer in self.observers:
            observer.on_deleted(phase, count)

    def on_finished(self, result: PurgeResult) -> None:
        for observer in self.observers:
            observer.on_finished(result)


__all__ = ["PurgeObserver", "NullObserver", "LoggingObserver", "CompositeObserver"]
