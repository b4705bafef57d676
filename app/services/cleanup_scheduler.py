"""Background scheduler that periodically evicts expired attempt entries."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from app.services.attempt_limiter import AttemptLimiter

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class CleanupScheduler:
    """Runs ``AttemptLimiter.cleanup`` on a fixed interval in a daemon thread.

    The scheduler does nothing until ``start`` is called; the owner (the app
    lifespan in production, the test itself otherwise) is responsible for
    calling ``stop``.

    Pass either a fixed ``limiter`` or ``resolve_limiter``, a callable looked
    up on every pass. The resolver form follows a limiter that is rebuilt
    after a configuration change.
    """

    def __init__(
        self,
        limiter: AttemptLimiter | None = None,
        *,
        interval_seconds: float = 300.0,
        resolve_limiter: Callable[[], AttemptLimiter] | None = None,
    ) -> None:
        if (limiter is None) == (resolve_limiter is None):
            raise ValueError("pass exactly one of limiter or resolve_limiter")
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self._limiter = limiter
        self._resolve_limiter = resolve_limiter
        self._interval = float(interval_seconds)
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self._last_run_at: str | None = None
        self._last_removed: int | None = None
        self._last_error: str | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def start(self) -> bool:
        """Start the background thread; returns False if it is already running."""
        with self._state_lock:
            if self._thread and self._thread.is_alive():
                return False
            self._stop_event.clear()
            thread = threading.Thread(
                target=self._run_loop,
                name="attempt-limiter-cleanup",
                daemon=True,
            )
            thread.start()
            self._thread = thread

        logger.info("cleanup_scheduler.started", extra={"interval_s": self._interval})
        return True

    def stop(self, *, join_timeout_seconds: float = 3.0) -> bool:
        """Signal the thread to exit and wait for it; returns False if not running."""
        with self._state_lock:
            thread = self._thread
            if not thread:
                return False
            self._stop_event.set()

        thread.join(timeout=max(0.1, float(join_timeout_seconds)))
        with self._state_lock:
            if self._thread is thread:
                self._thread = None

        logger.info("cleanup_scheduler.stopped")
        return True

    def run_once(self) -> int:
        """Run a single cleanup pass and record its outcome."""
        limiter = self._resolve_limiter() if self._resolve_limiter else self._limiter
        removed = limiter.cleanup()
        self._last_run_at = _utc_now_iso()
        self._last_removed = removed
        self._last_error = None
        return removed

    def status(self) -> dict[str, object]:
        with self._state_lock:
            running = bool(self._thread and self._thread.is_alive())
            thread_name = self._thread.name if self._thread else None
        return {
            "running": running,
            "thread_name": thread_name,
            "interval_s": self._interval,
            "last_run_at": self._last_run_at,
            "last_removed": self._last_removed,
            "last_error": self._last_error,
        }

    def _run_loop(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                removed = self.run_once()
            except Exception as exc:
                # One failed pass must not kill the loop; the next tick retries.
                self._last_error = f"{exc.__class__.__name__}: {exc}"
                logger.exception("cleanup_scheduler.failed")
                continue
            if removed:
                logger.info("cleanup_scheduler.evicted", extra={"removed": removed})
