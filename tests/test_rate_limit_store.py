"""Unit tests for the in-memory rate limit store."""

from app.adapters.rate_limit import InMemoryRateLimitStore, RateLimitEntry


def test_get_missing_key_returns_none() -> None:
    store = InMemoryRateLimitStore()

    assert store.get("login:x@y.com") is None
    assert len(store) == 0


def test_set_then_get() -> None:
    store = InMemoryRateLimitStore()
    store.set("login:x@y.com", RateLimitEntry(count=2, first_attempt=1000.0))

    entry = store.get("login:x@y.com")

    assert entry == RateLimitEntry(count=2, first_attempt=1000.0, blocked=False, blocked_until=None)
    assert len(store) == 1


def test_returned_entries_are_detached() -> None:
    store = InMemoryRateLimitStore()
    store.set("k", RateLimitEntry(count=1, first_attempt=1000.0))

    entry = store.get("k")
    entry.count = 99

    assert store.get("k").count == 1

    store.set("k", entry)
    assert store.get("k").count == 99


def test_delete_is_idempotent() -> None:
    store = InMemoryRateLimitStore()
    store.set("k", RateLimitEntry(count=1, first_attempt=1000.0))

    store.delete("k")
    store.delete("k")

    assert store.get("k") is None


def test_items_snapshot_allows_deletion_while_iterating() -> None:
    store = InMemoryRateLimitStore()
    for idx in range(3):
        store.set(f"k{idx}", RateLimitEntry(count=1, first_attempt=float(idx)))

    for key, _ in store.items():
        store.delete(key)

    assert len(store) == 0


def test_clear() -> None:
    store = InMemoryRateLimitStore()
    store.set("a", RateLimitEntry(count=1, first_attempt=1000.0))
    store.set("b", RateLimitEntry(count=6, first_attempt=1000.0, blocked=True, blocked_until=2800.0))

    store.clear()

    assert store.items() == []
