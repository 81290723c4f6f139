"""Retry with exponential backoff for calls to external services."""

import time
from typing import Callable, TypeVar

from logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def with_retry(
    fn: Callable[[], T],
    *,
    label: str,
    attempts: int = 3,
    base_delay: float = 1.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    should_retry: Callable[[BaseException], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call `fn` up to `attempts` times, waiting base_delay * 2**attempt between
    tries. Errors outside `retry_on`, or rejected by `should_retry`, are raised
    immediately; the last error is re-raised once attempts are exhausted.
    """
    attempts = max(1, attempts)
    last_error: BaseException | None = None

    for attempt in range(attempts):
        try:
            return fn()
        except retry_on as exc:
            if should_retry is not None and not should_retry(exc):
                raise
            last_error = exc
            logger.warning("%s attempt %d/%d failed: %s", label, attempt + 1, attempts, exc)
            if attempt < attempts - 1:
                delay = base_delay * (2 ** attempt)
                logger.info("%s retry in %.1fs", label, delay)
                sleep(delay)

    assert last_error is not None
    raise last_error
