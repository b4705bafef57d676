"""In-memory rate limit store.

Notes:
- Per-process only: running multiple workers gives each worker its own state.
- Thread-safe: uses a lock around the shared dict.
- No persistence: a restart forgets every entry.
"""

from __future__ import annotations

import threading
from dataclasses import replace

from app.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitEntry


class InMemoryRateLimitStore(AbstractRateLimitStore):
    """Dict-backed store for rate limit entries.

    Entries are copied on the way in and out so callers never hold a live
    reference into the store. This keeps the in-memory store behaving like a
    remote one: a mutation is only visible after ``set``.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: dict[str, RateLimitEntry] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryRateLimitStore(entries={len(self)})"

    def get(self, key: str) -> RateLimitEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            return replace(entry) if entry is not None else None

    def set(self, key: str, entry: RateLimitEntry) -> None:
        with self._lock:
            self._entries[key] = replace(entry)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def items(self) -> list[tuple[str, RateLimitEntry]]:
        with self._lock:
            return [(key, replace(entry)) for key, entry in self._entries.items()]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
