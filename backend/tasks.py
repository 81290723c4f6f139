"""Background execution of analysis runs on a thread pool."""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from logger import get_logger

logger = get_logger(__name__)


class TaskRunner:
    """
    Submits work to a thread pool and hands back the Future. While a run for
    a key is still in flight, submitting the same key returns that Future
    instead of starting a second run. Failures are logged from a done-callback.
    """

    def __init__(self, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="analysis")
        self._lock = threading.RLock()
        self._in_flight: dict[str, Future] = {}

    def submit(self, key: str, fn: Callable[..., Any], *args: Any) -> Future:
        with self._lock:
            existing = self._in_flight.get(key)
            if existing is not None and not existing.done():
                logger.info("[%s] Analysis already running, joining existing task", key)
                return existing

            future = self._executor.submit(fn, *args)
            self._in_flight[key] = future
            future.add_done_callback(lambda f: self._on_done(key, f))
            return future

    def _on_done(self, key: str, future: Future) -> None:
        with self._lock:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]
        if future.cancelled():
            logger.warning("[%s] Analysis task cancelled", key)
            return
        exc = future.exception()
        if exc is not None:
            logger.error("[%s] Analysis task failed: %s", key, exc)

    def in_flight(self, key: str) -> bool:
        with self._lock:
            future = self._in_flight.get(key)
            return future is not None and not future.done()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
