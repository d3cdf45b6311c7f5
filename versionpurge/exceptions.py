"""Custom exception hierarchy for versionpurge."""

from __future__ import annotations

from typing import Any

from versionpurge.models import DeletePhase


class PurgeError(Exception):
    """Base exception for all versionpurge-specific errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(PurgeError):
    """Raised when configuration is invalid or missing."""
    pass


class UsageError(ConfigurationError):
    """Raised when command-line arguments are invalid."""
    pass


class StorageError(PurgeError):
    """Raised when a storage provider call fails."""
    pass


class ListError(StorageError):
    """Raised when listing object versions fails."""
    pass


class DeleteError(StorageError):
    """Raised when deleting a batch of object versions fails."""

    def __init__(
        self,
        message: str,
        phase: DeletePhase,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.phase = phase
        self.details.setdefault("phase", phase.value)


class PurgeCancelledError(PurgeError):
    """Raised when the deadline expired or the run was cancelled before a call."""
    pass


class StalledListingError(PurgeError):
    """Raised when the listing keeps returning empty pages with a live cursor."""
    pass


__all__ = [
    "PurgeError",
    "ConfigurationError",
    "UsageError",
    "StorageError",
    "ListError",
    "DeleteError",
    "PurgeCancelledError",
    "StalledListingError",
]
