"""Storage abstraction: the listing and bulk-delete operations the purge engine needs."""

from __future__ import annotations

from typing import Iterator, Optional, Protocol, Sequence, TypeVar

from versionpurge.cancellation import Deadline
from versionpurge.exceptions import ConfigurationError
from versionpurge.models import DeletePhase, ListingPage, ObjectVersionRef, PaginationCursor

# Provider ceilings (ListObjectVersions MaxKeys, DeleteObjects batch size).
MAX_PAGE_SIZE = 1000
MAX_DELETE_BATCH = 1000

T = TypeVar("T")


class StorageLister(Protocol):
    def list_page(
        self,
        cursor: PaginationCursor,
        page_size: int,
        deadline: Optional[Deadline] = None,
    ) -> ListingPage:
        ...


class BatchDeleter(Protocol):
    def delete_all(
        self,
        objects: Sequence[ObjectVersionRef],
        phase: DeletePhase,
        deadline: Optional[Deadline] = None,
    ) -> None:
        ...


def validate_page_size(page_size: int) -> int:
    if isinstance(page_size, bool) or not isinstance(page_size, int):
        raise ConfigurationError(
            "Page size must be an integer",
            {"page_size": repr(page_size)},
        )
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ConfigurationError(
            f"Page size must be between 1 and {MAX_PAGE_SIZE}",
            {"page_size": str(page_size)},
        )
    return page_size


def chunked(items: Sequence[T], size: int = MAX_DELETE_BATCH) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of ``items`` no longer than ``size``, in order."""
    if size < 1:
        raise ValueError("Chunk size must be positive")
    for start in range(0, len(items), size):
        yield items[start:start + size]


__all__ = [
    "MAX_PAGE_SIZE",
    "MAX_DELETE_BATCH",
    "StorageLister",
    "BatchDeleter",
    "validate_page_size",
    "chunked",
]
