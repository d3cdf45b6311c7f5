from __future__ import annotations

from itertools import count
from typing import Optional, Sequence

from versionpurge.cancellation import Deadline, check_deadline
from versionpurge.models import DeletePhase, ListingPage, ObjectVersionRef, PaginationCursor
from versionpurge.storage import MAX_DELETE_BATCH, chunked, validate_page_size


class InMemoryVersionStore:
    """
    Versioned bucket held in process memory.

    Implements both StorageLister and BatchDeleter with the same pagination
    semantics as ListObjectVersions: entries are ordered by key, then by
    version, and the next cursor points at the last entry returned.
    """

    def __init__(self, batch_limit: int = MAX_DELETE_BATCH) -> None:
        self.batch_limit = batch_limit
        self._versions: dict[tuple[str, str], bool] = {}
        self._order: dict[tuple[str, str], int] = {}
        self._sequence = count()
        self.list_calls = 0
        self.delete_calls = 0

    def put(self, key: str, *, delete_marker: bool = False) -> ObjectVersionRef:
        seq = next(self._sequence)
        ref = ObjectVersionRef(key=key, version_id=f"v{seq:08d}")
        self._versions[(ref.key, ref.version_id)] = delete_marker
        self._order[(ref.key, ref.version_id)] = seq
        return ref

    def __len__(self) -> int:
        return len(self._versions)

    def _sorted_entries(self) -> list[tuple[str, str]]:
        return sorted(self._versions, key=lambda entry: (entry[0], self._order[entry]))

    def list_page(
        self,
        cursor: PaginationCursor,
        page_size: int,
        deadline: Optional[Deadline] = None,
    ) -> ListingPage:
        validate_page_size(page_size)
        check_deadline(deadline, "ListObjectVersions")
        self.list_calls += 1

        entries = self._sorted_entries()
        if not cursor.is_exhausted:
            marker = (cursor.key_marker or "", cursor.version_id_marker or "")
            entries = [
                entry for entry in entries
                if (entry[0], self._order.get(entry, -1)) > (marker[0], self._order.get(marker, -1))
            ]

        selected = entries[:page_size]
        versions = tuple(ObjectVersionRef(k, v) for k, v in selected if not self._versions[(k, v)])
        markers = tuple(ObjectVersionRef(k, v) for k, v in selected if self._versions[(k, v)])

        next_cursor = PaginationCursor.start()
        if len(entries) > page_size:
            last_key, last_version = selected[-1]
            next_cursor = PaginationCursor(key_marker=last_key, version_id_marker=last_version)
        return ListingPage(versions=versions, delete_markers=markers, next_cursor=next_cursor)

    def delete_all(
        self,
        objects: Sequence[ObjectVersionRef],
        phase: DeletePhase,
        deadline: Optional[Deadline] = None,
    ) -> None:
        for chunk in chunked(objects, self.batch_limit):
            check_deadline(deadline, "DeleteObjects")
            self.delete_calls += 1
            for ref in chunk:
                self._versions.pop((ref.key, ref.version_id), None)


__all__ = ["InMemoryVersionStore"]
