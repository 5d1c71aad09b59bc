"""Match concurrency layer.

Architecture:
    FastAPI (async) -> asyncio.Semaphore(N) -> ThreadPoolExecutor(N) -> match()

Requests beyond the semaphore limit queue for ``queue_timeout`` seconds, then
get 503. With ``parallel_probes`` enabled, the probes of a single call are
scanned on a separate executor so a call never waits on its own pool slots.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, TypeVar

from facematch.matching.matcher import match

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from facematch.config import Settings
    from facematch.matching.gallery import EnrolledIdentity, MatchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MatchPool:
    """Manages the semaphore and thread pools for match calls."""

    def __init__(self, settings: Settings) -> None:
        self._semaphore = asyncio.Semaphore(settings.max_concurrent)
        self._executor = ThreadPoolExecutor(
            max_workers=settings.max_concurrent,
            thread_name_prefix="facematch-match",
        )
        self._probe_executor: ThreadPoolExecutor | None = None
        if settings.parallel_probes:
            self._probe_executor = ThreadPoolExecutor(thread_name_prefix="facematch-probe")
        self._queue_timeout = settings.queue_timeout
        self._active_count: int = 0
        self._queue_depth: int = 0
        self._counter_lock = threading.Lock()

    async def run(self, func: Callable[..., T], *args: object) -> T:
        """Submit a synchronous function to the match thread pool.

        Acquires the semaphore (with timeout), runs the function in the
        executor, then releases.

        Raises:
            TimeoutError: If the semaphore cannot be acquired within the timeout.
        """
        with self._counter_lock:
            self._queue_depth += 1
        try:
            await asyncio.wait_for(self._semaphore.acquire(), timeout=self._queue_timeout)
        finally:
            with self._counter_lock:
                self._queue_depth -= 1

        with self._counter_lock:
            self._active_count += 1
        try:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self._executor, func, *args)
        finally:
            self._semaphore.release()
            with self._counter_lock:
                self._active_count -= 1

    async def match(
        self,
        gallery: Sequence[EnrolledIdentity],
        probes: Sequence[Sequence[float]],
        threshold: float,
    ) -> list[MatchResult | None]:
        """Run :func:`facematch.matching.matcher.match` in the pool."""
        return await self.run(match, gallery, probes, threshold, self._probe_executor)

    @property
    def active_count(self) -> int:
        """Number of currently running match calls."""
        with self._counter_lock:
            return self._active_count

    @property
    def queue_depth(self) -> int:
        """Number of requests waiting for a semaphore slot."""
        with self._counter_lock:
            return self._queue_depth

    def shutdown(self) -> None:
        """Shut down the thread pool executors."""
        self._executor.shutdown(wait=True)
        if self._probe_executor is not None:
            self._probe_executor.shutdown(wait=True)
        logger.info("Match pool shut down")
