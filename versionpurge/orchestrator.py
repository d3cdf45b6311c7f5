"""
Purge orchestration.

Drives ListObjectVersions → DeleteObjects until the bucket listing is
drained, keeping two monotonic counters that are only advanced after a
delete call succeeds. The first failure ends the run; counts accumulated up
to that point are still returned.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from versionpurge.cancellation import Deadline
from versionpurge.exceptions import ConfigurationError, PurgeError, StalledListingError
from versionpurge.models import DeletePhase, ObjectVersionRef, PaginationCursor, PurgeResult
from versionpurge.observer import NullObserver, PurgeObserver
from versionpurge.storage import MAX_PAGE_SIZE, BatchDeleter, StorageLister, validate_page_size
from versionpurge.storage.s3 import S3BatchDeleter, S3StorageLister


class PurgeOrchestrator:
    def __init__(
        self,
        lister: StorageLister,
        deleter: BatchDeleter,
        *,
        page_size: int = MAX_PAGE_SIZE,
        deadline: Optional[Deadline] = None,
        observer: Optional[PurgeObserver] = None,
        max_empty_pages: Optional[int] = None,
    ) -> None:
        if max_empty_pages is not None and max_empty_pages < 1:
            raise ConfigurationError(
                "max_empty_pages must be a positive integer or None",
                {"max_empty_pages": str(max_empty_pages)},
            )
        self.lister = lister
        self.deleter = deleter
        self.page_size = validate_page_size(page_size)
        self.deadline = deadline
        self.observer = observer or NullObserver()
        self.max_empty_pages = max_empty_pages

    def run(self) -> PurgeResult:
        """Purge every version and delete marker; never raises PurgeError."""
        result = PurgeResult()
        try:
            self._drain(result)
        except PurgeError as exc:
            result.error = exc
        self.observer.on_finished(result)
        return result

    def _drain(self, result: PurgeResult) -> None:
        cursor = PaginationCursor.start()
        empty_streak = 0

        while True:
            self.observer.on_list(cursor)
            page = self.lister.list_page(cursor, self.page_size, self.deadline)
            self.observer.on_page(page)

            self._delete(page.versions, DeletePhase.VERSIONS, result)
            self._delete(page.delete_markers, DeletePhase.DELETE_MARKERS, result)

            if page.is_final:
                return

            if page.is_empty:
                empty_streak += 1
                if self.max_empty_pages is not None and empty_streak > self.max_empty_pages:
                    raise StalledListingError(
                        f"Listing returned {empty_streak} consecutive empty pages "
                        "without exhausting the cursor",
                        {
                            "empty_pages": str(empty_streak),
                            "cursor": page.next_cursor.describe(),
                        },
                    )
            else:
                empty_streak = 0

            cursor = page.next_cursor

    def _delete(
        self,
        objects: Sequence[ObjectVersionRef],
        phase: DeletePhase,
        result: PurgeResult,
    ) -> None:
        if not objects:
            return
        self.deleter.delete_all(objects, phase, self.deadline)
        result.record(phase, len(objects))
        self.observer.on_deleted(phase, len(objects))


def purge_bucket(
    client: Any,
    bucket: str,
    *,
    page_size: int = MAX_PAGE_SIZE,
    deadline: Optional[Deadline] = None,
    observer: Optional[PurgeObserver] = None,
    max_empty_pages: Optional[int] = None,
) -> PurgeResult:
    """Purge ``bucket`` through an already-configured boto3 S3 client."""
    orchestrator = PurgeOrchestrator(
        S3StorageLister(client, bucket),
        S3BatchDeleter(client, bucket),
        page_size=page_size,
        deadline=deadline,
        observer=observer,
        max_empty_pages=max_empty_pages,
    )
    return orchestrator.run()


__all__ = ["PurgeOrchestrator", "purge_bucket"]
