from __future__ import annotations

import time
from typing import Callable, Optional

from versionpurge.exceptions import PurgeCancelledError


class Deadline:
    """
    Optional deadline and cancellation flag observed before every provider call.

    A deadline without ``expires_at`` never expires on its own but can still be
    cancelled explicitly.
    """

    def __init__(
        self,
        expires_at: Optional[float] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.expires_at = expires_at
        self._clock = clock
        self._cancelled = False

    @classmethod
    def from_timeout(
        cls,
        seconds: Optional[float],
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> "Deadline":
        if seconds is None or seconds <= 0:
            return cls(None, clock=clock)
        return cls(clock() + seconds, clock=clock)

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def remaining(self) -> Optional[float]:
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - self._clock())

    def check(self, operation: str) -> None:
        """Raise PurgeCancelledError if ``operation`` must not be issued."""
        if self._cancelled:
            raise PurgeCancelledError(
                f"Purge cancelled before {operation}",
                {"operation": operation, "reason": "cancelled"},
            )
        if self.expires_at is not None and self._clock() >= self.expires_at:
            raise PurgeCancelledError(
                f"Deadline exceeded before {operation}",
                {"operation": operation, "reason": "deadline"},
            )


def check_deadline(deadline: Optional[Deadline], operation: str) -> None:
    if deadline is not None:
        deadline.check(operation)


__all__ = ["Deadline", "check_deadline"]
