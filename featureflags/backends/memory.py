import asyncio
import time
from collections.abc import Callable
from logging import getLogger
from typing import Optional
from typing import TypeVar

from featureflags.types import CacheEntry

from .base import BaseCacheBackend

T = TypeVar("T")

DEFAULT_CLEANUP_INTERVAL = 30.0

logger = getLogger(__name__)


class MemoryBackend(BaseCacheBackend[T]):
    """In-memory TTL cache with lazy expiry and a periodic sweep.

    Expired entries are dropped when they are read, and a background task
    removes the ones that are never read again. The sweep runs as an asyncio
    task, so it never keeps the process alive; it starts as soon as an event
    loop is available (see ``start``) and stops on ``shutdown``.

    Args:
        ttl: Maximum entry age in seconds
        cleanup_interval: Seconds between two sweep passes
        clock: Monotonic time source, in seconds
    """

    def __init__(
        self,
        ttl: float,
        cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cache: dict[str, CacheEntry[T]] = {}
        self.ttl = ttl
        self.cleanup_interval = cleanup_interval
        self.clock = clock
        self._cleanup: asyncio.Task[None] | None = None
        self._shut_down = False

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet, the owner calls start() from async code
            pass
        else:
            self.start()

    def get(self, key: str) -> Optional[T]:
        entry = self.cache.get(key)
        if entry is None:
            return None

        if entry.is_expired(self.ttl, self.clock()):
            self.cache.pop(key, None)
            return None

        return entry.value

    def set(self, key: str, value: T) -> None:
        self.cache[key] = CacheEntry(value=value, created_at=self.clock())

    def delete(self, key: str) -> None:
        self.cache.pop(key, None)

    def clear(self) -> None:
        self.cache.clear()

    @property
    def size(self) -> int:
        # Includes expired entries the sweep has not reached yet
        return len(self.cache)

    @property
    def running(self) -> bool:
        return self._cleanup is not None and not self._cleanup.done()

    def start(self) -> None:
        """Start the sweep task on the running loop; no-op if already running."""
        if self._shut_down:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        if self._cleanup is not None and self.running:
            if self._cleanup.get_loop() is loop:
                return

        self._cleanup = loop.create_task(self._cleanup_task())
        logger.debug(
            "Started cache sweep every %ss (ttl=%ss)", self.cleanup_interval, self.ttl
        )

    async def _cleanup_task(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            self.cleanup()

    def cleanup(self) -> int:
        """Remove every expired entry and return how many were removed."""
        now = self.clock()
        expired_keys = [
            k for k, v in self.cache.items() if v.is_expired(self.ttl, now)
        ]
        for key in expired_keys:
            self.cache.pop(key, None)

        if expired_keys:
            logger.debug("Swept %d expired cache entries", len(expired_keys))
        return len(expired_keys)

    def shutdown(self) -> None:
        self._shut_down = True
        if self._cleanup is not None:
            if not self._cleanup.get_loop().is_closed():
                self._cleanup.cancel()
            self._cleanup = None
        self.clear()
