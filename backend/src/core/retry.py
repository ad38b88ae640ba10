"""Bounded retry with exponential backoff for calls to external collaborators."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    base_delay: float,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    label: str = "operation",
) -> T:
    """Await ``operation`` up to ``max_attempts`` times.

    The delay doubles after every failed attempt, starting at ``base_delay``.
    Exceptions outside ``retry_on`` propagate immediately; the last retryable
    failure propagates once attempts are exhausted.
    """
    attempts = max(1, max_attempts)
    delay = base_delay

    for attempt in range(attempts):
        try:
            return await operation()
        except retry_on as e:
            if attempt == attempts - 1:
                logger.exception("%s failed after %d attempts", label, attempts)
                raise

            logger.warning(
                "%s attempt %d failed (%s), retrying in %.1fs...",
                label,
                attempt + 1,
                e,
                delay,
            )
            await asyncio.sleep(delay)
            delay *= 2

    # Unreachable: the loop either returns or raises
    msg = f"{label} exhausted retries"
    raise RuntimeError(msg)
