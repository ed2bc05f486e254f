"""Bounded retry with a fixed delay between attempts."""

import time
from collections.abc import Callable
from typing import TypeVar

from cluster_harness.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def retry(
    attempts: int,
    delay: float,
    action: Callable[[], T],
    retry_on: type[BaseException] | tuple[type[BaseException], ...] = Exception,
) -> T:
    """Call ``action`` until it succeeds or ``attempts`` calls have failed.

    Sleeps ``delay`` seconds between attempts but never after the last one.
    Exceptions not matching ``retry_on`` propagate immediately.

    Args:
        attempts: Maximum number of calls, at least 1
        delay: Seconds to wait between failed attempts
        action: Zero-argument callable to run
        retry_on: Exception type(s) that count as a retryable failure

    Returns:
        Whatever ``action`` returned on its first successful call

    Raises:
        ValueError: If attempts is less than 1
        Exception: The error from the final attempt, unchanged
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    for attempt in range(1, attempts + 1):
        try:
            return action()
        except retry_on as e:
            if attempt == attempts:
                logger.debug(f"Giving up after {attempts} attempt(s): {e}")
                raise
            logger.debug(f"Attempt {attempt}/{attempts} failed, retrying in {delay}s: {e}")
            time.sleep(delay)

    raise AssertionError("unreachable")
