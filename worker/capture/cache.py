"""
Capture result cache with in-flight deduplication.

One CaptureCache is built per worker process and handed to the screenshot
service. Entries expire TTL seconds after a successful capture and are
evicted lazily on lookup. While a capture for a key is running, every other
caller for that key awaits the same pending future, so at most one capture
attempt exists per key. The pending entry is removed when the attempt
settles, whether it succeeded or failed; failures are never cached.
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from shared.logging import get_logger
from worker.capture.models import ScreenshotResult

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 300


@dataclass
class CacheEntry:
    value: ScreenshotResult
    expires_at: float


class CaptureCache:
    """TTL cache plus in-flight registry keyed by capture cache key."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._inflight: dict[str, asyncio.Future] = {}
        # Guards both maps; never held across an await.
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _get_locked(self, key: str) -> Optional[ScreenshotResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def get(self, key: str) -> Optional[ScreenshotResult]:
        """Return the cached result, or None on miss or expiry."""
        with self._lock:
            return self._get_locked(key)

    def put(self, key: str, value: ScreenshotResult) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)

    def is_inflight(self, key: str) -> bool:
        with self._lock:
            return key in self._inflight

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    async def get_or_capture(
        self,
        key: str,
        capture: Callable[[], Awaitable[ScreenshotResult]],
    ) -> ScreenshotResult:
        """
        Return a cached result, join an in-flight capture, or run capture().

        Concurrent callers for the same key get the same result object or
        the same exception.
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            cached = self._get_locked(key)
            if cached is not None:
                logger.info("capture.cache_hit", cache_key=key)
                return cached
            pending = self._inflight.get(key)
            owner = pending is None
            if owner:
                pending = loop.create_future()
                self._inflight[key] = pending

        if not owner:
            logger.info("capture.inflight_joined", cache_key=key)
            # Shield so a cancelled waiter does not cancel the shared attempt.
            return await asyncio.shield(pending)

        logger.info("capture.cache_miss", cache_key=key)
        try:
            result = await capture()
        except Exception as e:
            pending.set_exception(e)
            # Mark retrieved; the owner re-raises it below.
            pending.exception()
            raise
        except BaseException:
            # Cancellation: waiters see CancelledError and may retry.
            pending.cancel()
            raise
        else:
            self.put(key, result)
            pending.set_result(result)
            return result
        finally:
            with self._lock:
                if self._inflight.get(key) is pending:
                    del self._inflight[key]
