"""
Bounded retry with exponential backoff for backing-store calls.

Only ``TransientBackingStoreError`` (and subclasses such as
``TransactionConflictError``) is retried. Anything else propagates on the
first failure.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .config import get_settings
from .exceptions import TransientBackingStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: Optional[int] = None,
    initial_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    retry_on: tuple[type[Exception], ...] = (TransientBackingStoreError,),
) -> T:
    """
    Run ``operation`` until it succeeds or the attempts are exhausted.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        attempts: Total number of attempts (defaults to STORE_RETRY_ATTEMPTS).
        initial_delay: Delay before the second attempt, doubled each time.
        max_delay: Upper bound for a single delay.
        retry_on: Exception types that trigger another attempt.

    Returns:
        The operation's result.

    Raises:
        The last exception raised by ``operation`` once attempts run out.
    """
    settings = get_settings()
    attempts = attempts if attempts is not None else settings.store_retry_attempts
    delay = initial_delay if initial_delay is not None else settings.store_retry_initial_delay
    max_delay = max_delay if max_delay is not None else settings.store_retry_max_delay

    attempt = 1
    while True:
        try:
            return await operation()
        except retry_on as e:
            if attempt >= attempts:
                logger.warning("Giving up after %d attempt(s): %s", attempt, e)
                raise
            logger.debug(
                "Transient failure (attempt %d/%d), retrying in %.2fs: %s",
                attempt,
                attempts,
                delay,
                e,
            )
            if delay > 0:
                await asyncio.sleep(delay)
            delay = min(delay * 2, max_delay)
            attempt += 1
