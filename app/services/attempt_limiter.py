"""Attempt limiter with sliding window and cooldown block.

Throttles repeated attempts at a named action (``login``, ``register``,
``reset-password``...) for a given identifier, typically an e-mail address.

Rules per ``action:identifier`` key:
- The first attempt opens a window of ``window_seconds``.
- Up to ``max_attempts`` attempts are allowed inside that window.
- The attempt that exceeds the limit blocks the key for
  ``block_duration_seconds``; every attempt during the block is denied.
- An expired window or an expired block starts over from a fresh window.

Denials are reported through ``RateLimitResult``; nothing here raises for a
denied attempt. The HTTP layer decides how to surface them.
"""

from __future__ import annotations

import hashlib
import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from app.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitEntry,
    RateLimitResult,
    RateLimitStatus,
)
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    """Limits applied to one action.

    Attributes:
        max_attempts: Attempts allowed per window before blocking.
        window_seconds: Length of the counting window, anchored at the first attempt.
        block_duration_seconds: Cooldown once the limit is exceeded.
    """

    max_attempts: int = 5
    window_seconds: int = 15 * 60
    block_duration_seconds: int = 30 * 60

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        if self.block_duration_seconds < 1:
            raise ValueError("block_duration_seconds must be >= 1")


def build_key(identifier: str, action: str) -> str:
    """Build the store key; identifiers are case-insensitive, actions are not."""
    return f"{action}:{identifier.lower()}"


def hash_key(key: str) -> str:
    """Hash a limiter key for logging without exposing the identifier."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def _minutes(seconds: float) -> int:
    return max(1, math.ceil(seconds / 60))


def _plural(count: int) -> str:
    return "minute" if count == 1 else "minutes"


class AttemptLimiter:
    """Per-identifier attempt tracker with escalation to a timed block.

    All operations take the limiter lock for the whole read-modify-write
    sequence, so the limiter can be shared between request threads and the
    cleanup scheduler.
    """

    def __init__(
        self,
        *,
        store: AbstractRateLimitStore | None = None,
        default_policy: RateLimitPolicy | None = None,
        policies: Mapping[str, RateLimitPolicy] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Entry storage; defaults to a fresh in-memory store.
            default_policy: Limits for actions without an override.
            policies: Per-action overrides keyed by action name.
            clock: Time source returning UNIX time in seconds.
        """
        self._store = store if store is not None else InMemoryRateLimitStore()
        self._default_policy = default_policy or RateLimitPolicy()
        self._policies: dict[str, RateLimitPolicy] = dict(policies or {})
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def store(self) -> AbstractRateLimitStore:
        return self._store

    def policy_for(self, action: str) -> RateLimitPolicy:
        """Return the override for ``action`` or the default policy."""
        return self._policies.get(action, self._default_policy)

    def check_limit(self, identifier: str, action: str) -> RateLimitResult:
        """Record an attempt and decide whether it may proceed.

        Args:
            identifier: Subject being throttled (e.g., e-mail); case-insensitive.
            action: Namespace of the attempt (e.g., ``login``); case-sensitive.

        Returns:
            RateLimitResult with ``remaining_attempts`` when allowed, or
            ``retry_after`` and ``message`` when denied.
        """
        key = build_key(identifier, action)
        policy = self.policy_for(action)

        with self._lock:
            now = self._clock()
            entry = self._store.get(key)

            if entry is not None and entry.blocked:
                if entry.blocked_until is not None and now < entry.blocked_until:
                    retry_after = math.ceil(entry.blocked_until - now)
                    minutes = _minutes(retry_after)
                    logger.info(
                        "attempt_limit.denied",
                        extra={
                            "key_hash": hash_key(key),
                            "action": action,
                            "retry_after_s": retry_after,
                        },
                    )
                    return RateLimitResult(
                        allowed=False,
                        retry_after=retry_after,
                        message=f"Too many attempts. Try again in {minutes} {_plural(minutes)}.",
                    )
                self._store.delete(key)
                entry = None

            if entry is None or now - entry.first_attempt > policy.window_seconds:
                self._store.set(
                    key,
                    RateLimitEntry(
                        count=1,
                        first_attempt=now,
                        window_seconds=policy.window_seconds,
                    ),
                )
                return self._allowed(key, action, remaining=policy.max_attempts - 1)

            entry.count += 1

            if entry.count > policy.max_attempts:
                entry.blocked = True
                entry.blocked_until = now + policy.block_duration_seconds
                self._store.set(key, entry)

                minutes = _minutes(policy.block_duration_seconds)
                logger.warning(
                    "attempt_limit.blocked",
                    extra={
                        "key_hash": hash_key(key),
                        "action": action,
                        "attempts": entry.count,
                        "block_s": policy.block_duration_seconds,
                    },
                )
                return RateLimitResult(
                    allowed=False,
                    retry_after=policy.block_duration_seconds,
                    message=f"Too many attempts. Temporarily locked for {minutes} {_plural(minutes)}.",
                )

            self._store.set(key, entry)
            return self._allowed(key, action, remaining=policy.max_attempts - entry.count)

    def _allowed(self, key: str, action: str, *, remaining: int) -> RateLimitResult:
        logger.debug(
            "attempt_limit.allowed",
            extra={"key_hash": hash_key(key), "action": action, "remaining": remaining},
        )
        return RateLimitResult(allowed=True, remaining_attempts=remaining)

    def reset(self, identifier: str, action: str) -> None:
        """Forget all attempts for the key, typically after a successful action."""
        key = build_key(identifier, action)
        with self._lock:
            self._store.delete(key)
        logger.info("attempt_limit.reset", extra={"key_hash": hash_key(key), "action": action})

    def cleanup(self) -> int:
        """Drop entries whose window or block has expired.

        Entries inside an active window or an active block are kept.

        Returns:
            Number of removed entries.
        """
        removed = 0
        with self._lock:
            now = self._clock()
            for key, entry in self._store.items():
                if self._is_stale(entry, now):
                    self._store.delete(key)
                    removed += 1
            remaining = len(self._store)

        logger.debug(
            "attempt_limit.cleanup",
            extra={"removed": removed, "entries": remaining},
        )
        return removed

    def _is_stale(self, entry: RateLimitEntry, now: float) -> bool:
        if entry.blocked:
            return entry.blocked_until is not None and now > entry.blocked_until
        window = entry.window_seconds
        if window is None:
            # Entry written by another writer of a shared store.
            window = self._default_policy.window_seconds
        return now - entry.first_attempt > window

    def get_status(self, identifier: str, action: str) -> RateLimitStatus | None:
        """Return a read-only snapshot of the key, or None when untracked.

        No expiry check is made: a stale entry is reported as stored. Use
        ``check_limit`` for enforcement.
        """
        key = build_key(identifier, action)
        with self._lock:
            entry = self._store.get(key)
        if entry is None:
            return None

        policy = self.policy_for(action)
        blocked_until = (
            datetime.fromtimestamp(entry.blocked_until, tz=timezone.utc)
            if entry.blocked_until is not None
            else None
        )
        return RateLimitStatus(
            attempts=entry.count,
            remaining=max(0, policy.max_attempts - entry.count),
            blocked=entry.blocked,
            blocked_until=blocked_until,
        )

    def clear_all(self) -> None:
        """Remove every tracked key (admin reset and test isolation)."""
        with self._lock:
            self._store.clear()
        logger.info("attempt_limit.cleared")

    def stats(self) -> dict[str, Any]:
        """Return entry counts without exposing identifiers."""
        with self._lock:
            entries = self._store.items()
        return {
            "entries": len(entries),
            "blocked": sum(1 for _, entry in entries if entry.blocked),
            "policies": sorted(self._policies),
        }
