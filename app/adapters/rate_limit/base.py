"""Rate limit data model and storage interface.

The limiter depends on this abstraction (not the concrete store) so the
in-memory map can later be replaced by a shared store (e.g., Redis) without
touching the limiting rules.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass
class RateLimitEntry:
    """Attempt history for one ``action:identifier`` key.

    Attributes:
        count: Attempts observed in the current window.
        first_attempt: UNIX epoch seconds when the current window started.
        blocked: Whether the key is cooling down.
        blocked_until: UNIX epoch seconds when the block ends (set when blocked).
        window_seconds: Window length of the action policy in force when the
            window opened; cleanup uses it without parsing the key.
    """

    count: int
    first_attempt: float
    blocked: bool = False
    blocked_until: float | None = None
    window_seconds: int | None = None


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single attempt check.

    Attributes:
        allowed: Whether the attempt may proceed.
        remaining_attempts: Attempts left in the window (allowed results only).
        retry_after: Seconds until the key is unblocked (denied results only).
        message: Human-readable explanation (denied results only).
    """

    allowed: bool
    remaining_attempts: int | None = None
    retry_after: int | None = None
    message: str | None = None


@dataclass(frozen=True)
class RateLimitStatus:
    """Advisory snapshot of a key, meant for display only."""

    attempts: int
    remaining: int
    blocked: bool
    blocked_until: datetime | None = None


class AbstractRateLimitStore(ABC):
    """Interface for rate limit entry storage."""

    @abstractmethod
    def get(self, key: str) -> RateLimitEntry | None:
        """Return the entry stored for ``key`` or None."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, entry: RateLimitEntry) -> None:
        """Create or overwrite the entry for ``key``."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; a missing key is not an error."""
        raise NotImplementedError

    @abstractmethod
    def items(self) -> list[tuple[str, RateLimitEntry]]:
        """Return a snapshot of all entries.

        The snapshot is detached from the store, so callers may delete keys
        while iterating over it.
        """
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""
        raise NotImplementedError

    @abstractmethod
    def __len__(self) -> int:
        raise NotImplementedError
