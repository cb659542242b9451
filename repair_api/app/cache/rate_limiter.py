"""Thread-safe in-memory fixed-window rate limiter.

One instance per protected feature.  Counts are held per identity until the
window elapses; a background asyncio task sweeps expired entries once per
window, and an expired entry is also reset lazily on its next access.
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class RateLimitRecord:
    """Usage of one identity within its current window."""

    count: int
    reset_time: float


class RateLimiter:
    """Per-identity request cap over a fixed window."""

    def __init__(
        self,
        window_seconds: float,
        max_requests: int,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.name = name
        self._clock = clock
        self._lock = threading.Lock()
        self._store: Dict[str, RateLimitRecord] = {}
        self._cleanup_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    @staticmethod
    def _key(identity: str) -> str:
        return identity.strip().lower()

    def check_and_consume(self, identity: str) -> bool:
        """Consume one request for *identity*; ``False`` once at the cap.

        The check and the increment happen under one lock, so concurrent
        requests for the same identity cannot overshoot the cap.
        """
        key = self._key(identity)
        now = self._clock()
        with self._lock:
            record = self._store.get(key)
            if record is None or now >= record.reset_time:
                self._store[key] = RateLimitRecord(
                    count=1, reset_time=now + self.window_seconds
                )
                return True
            if record.count >= self.max_requests:
                allowed = False
            else:
                record.count += 1
                allowed = True

        if not allowed:
            logger.info("rate_limit_exceeded", limiter=self.name)
        return allowed

    def retry_after(self, identity: str) -> float:
        """Seconds until *identity*'s window resets (0 if not limited)."""
        key = self._key(identity)
        now = self._clock()
        with self._lock:
            record = self._store.get(key)
            if record is None:
                return 0.0
            return max(0.0, record.reset_time - now)

    def get(self, identity: str) -> Optional[RateLimitRecord]:
        """Return a copy of the live record (lazy-evicts if expired)."""
        key = self._key(identity)
        now = self._clock()
        with self._lock:
            record = self._store.get(key)
            if record is None:
                return None
            if now >= record.reset_time:
                del self._store[key]
                return None
            return RateLimitRecord(count=record.count, reset_time=record.reset_time)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def sweep_expired(self) -> int:
        """Bulk-remove expired entries.  Returns count removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, rec in self._store.items() if now >= rec.reset_time]
            for k in expired:
                del self._store[k]
        if expired:
            logger.debug("rate_limit_swept", limiter=self.name, removed=len(expired))
        return len(expired)

    async def start(self) -> None:
        """Start an asyncio background task that sweeps once per window."""
        if self._cleanup_task is not None:
            return

        async def _loop() -> None:
            while True:
                await asyncio.sleep(self.window_seconds)
                self.sweep_expired()

        self._cleanup_task = asyncio.create_task(_loop())

    async def stop(self) -> None:
        """Cancel the background sweep task."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

    @property
    def running(self) -> bool:
        return self._cleanup_task is not None

    # ------------------------------------------------------------------
    # Utility
    # ------------------------------------------------------------------

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
