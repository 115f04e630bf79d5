"""
Resilience utilities for outbound calls.

Only collaborators that are safe to repeat (notification delivery) are
wrapped; the resolution pipeline itself never retries a failed stage.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar, ParamSpec
from functools import wraps

logger = logging.getLogger(__name__)

P = ParamSpec('P')
T = TypeVar('T')


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    exceptions: tuple = (Exception,)
):
    """
    Decorator for retrying async functions with exponential backoff.

    Args:
        max_retries: Maximum number of attempts (default: 3)
        base_delay: Initial delay in seconds between attempts (default: 1.0)
        max_delay: Maximum delay in seconds between attempts (default: 30.0)
        exponential_base: Base for exponential backoff calculation (default: 2.0)
        exceptions: Exception types that trigger another attempt

    Returns:
        Decorated coroutine function; the last exception is re-raised

    Example:
        @retry_with_backoff(max_retries=3, exceptions=(httpx.TransportError,))
        async def post_message(text):
            ...
    """
    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            for attempt in range(max_retries):
                try:
                    result = await func(*args, **kwargs)

                    if attempt > 0:
                        logger.info(
                            f"{func.__name__} succeeded on attempt {attempt + 1}/{max_retries}"
                        )

                    return result

                except exceptions as e:
                    if attempt == max_retries - 1:
                        logger.error(f"{func.__name__} failed after {max_retries} attempts: {e}")
                        raise

                    delay = min(base_delay * (exponential_base ** attempt), max_delay)

                    logger.warning(
                        f"{func.__name__} failed on attempt {attempt + 1}/{max_retries}: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )

                    await asyncio.sleep(delay)

            raise RuntimeError(f"{func.__name__} called with max_retries={max_retries}")

        return wrapper

    return decorator
