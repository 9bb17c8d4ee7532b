"""Bounded retry with exponential backoff for page fetches."""

import asyncio
from collections.abc import Awaitable, Callable, Iterator
from typing import Any, TypeVar

import structlog

from authorscout.utils.exceptions import FetchError, RateLimitedError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def backoff_delays(initial_delay: float, backoff_factor: float, retries: int) -> Iterator[float]:
    """Yield the pause before each of ``retries`` further attempts."""
    delay = initial_delay
    for _ in range(retries):
        yield delay
        delay *= backoff_factor


def _describe(func: Callable[..., Any]) -> str:
    return getattr(func, "__qualname__", None) or getattr(func, "__name__", None) or repr(func)


async def retry_with_exponential_backoff(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    rate_limit_multiplier: float = 5.0,
    retry_on_exceptions: tuple[type[Exception], ...] = (FetchError,),
    **kwargs: Any,
) -> T:
    """
    Await ``func`` until it succeeds or ``max_retries`` extra attempts fail.

    A RateLimitedError stretches the pending pause by ``rate_limit_multiplier``.
    Exceptions outside ``retry_on_exceptions`` propagate at once.

    Raises:
        The error of the final attempt
    """
    for attempt, delay in enumerate(backoff_delays(initial_delay, backoff_factor, max_retries), 1):
        try:
            return await func(*args, **kwargs)
        except retry_on_exceptions as e:
            throttled = isinstance(e, RateLimitedError)
            wait = delay * rate_limit_multiplier if throttled else delay
            logger.warning(
                "retry_attempt",
                function=_describe(func),
                url=getattr(e, "url", None),
                attempt=attempt,
                max_retries=max_retries,
                delay=wait,
                rate_limited=throttled,
                error=str(e),
            )
            await asyncio.sleep(wait)

    try:
        return await func(*args, **kwargs)
    except retry_on_exceptions as e:
        logger.error(
            "retry_exhausted",
            function=_describe(func),
            url=getattr(e, "url", None),
            attempts=max_retries + 1,
            error=str(e),
        )
        raise
