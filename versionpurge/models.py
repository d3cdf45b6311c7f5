"""Value types shared by the listing, deletion and orchestration layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from versionpurge.exceptions import PurgeError


class DeletePhase(str, Enum):
    """Which of the two listed entity classes a delete call works on."""
    VERSIONS = "versions"
    DELETE_MARKERS = "delete-markers"


@dataclass(frozen=True)
class ObjectVersionRef:
    """One deletable unit: a version of an object, or a delete marker."""

    key: str
    version_id: str

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("ObjectVersionRef.key must be a non-empty string")
        if not self.version_id:
            raise ValueError("ObjectVersionRef.version_id must be a non-empty string")

    def to_identifier(self) -> dict[str, str]:
        return {"Key": self.key, "VersionId": self.version_id}


@dataclass(frozen=True)
class PaginationCursor:
    """
    Key marker / version-id marker pair of the ListObjectVersions protocol.

    The two markers are defined jointly by the provider, so a cursor is only
    ever replaced as a whole (it is frozen). Absent/absent means "start of
    listing" when sent and "no further pages" when received.
    """

    key_marker: Optional[str] = None
    version_id_marker: Optional[str] = None

    @classmethod
    def start(cls) -> "PaginationCursor":
        return cls()

    @property
    def is_exhausted(self) -> bool:
        return self.key_marker is None and self.version_id_marker is None

    def to_request_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.key_marker is not None:
            params["KeyMarker"] = self.key_marker
        if self.version_id_marker is not None:
            params["VersionIdMarker"] = self.version_id_marker
        return params

    def describe(self) -> str:
        parts = []
        if self.key_marker is not None:
            parts.append(f"keyMarker={self.key_marker}")
        if self.version_id_marker is not None:
            parts.append(f"versionIdMarker={self.version_id_marker}")
        return ":".join(parts) if parts else "start"


@dataclass(frozen=True)
class ListingPage:
    versions: tuple[ObjectVersionRef, ...] = ()
    delete_markers: tuple[ObjectVersionRef, ...] = ()
    next_cursor: PaginationCursor = PaginationCursor()

    @property
    def is_empty(self) -> bool:
        return not self.versions and not self.delete_markers

    @property
    def is_final(self) -> bool:
        # Both lists empty AND both markers absent; either signal alone keeps the loop going.
        return self.is_empty and self.next_cursor.is_exhausted


@dataclass
class PurgeResult:
    """
    Outcome of a purge run.

    Counts are returned even when ``error`` is set so that partial progress
    stays observable to the caller.
    """

    deleted_versions: int = 0
    deleted_delete_markers: int = 0
    error: Optional["PurgeError"] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def total(self) -> int:
        return self.deleted_versions + self.deleted_delete_markers

    def record(self, phase: DeletePhase, count: int) -> None:
        if count < 0:
            raise ValueError("Deleted count cannot be negative")
        if phase is DeletePhase.VERSIONS:
            self.deleted_versions += count
        else:
            self.deleted_delete_markers += count

    def as_tuple(self) -> tuple[int, int, Optional["PurgeError"]]:
        return self.deleted_versions, self.deleted_delete_markers, self.error


__all__ = [
    "DeletePhase",
    "ObjectVersionRef",
    "PaginationCursor",
    "ListingPage",
    "PurgeResult",
]
