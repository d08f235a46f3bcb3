"""
Retry Helper
Bounded retry with exponential backoff for awaitable calls
"""

import asyncio
from typing import Awaitable, Callable, TypeVar
import logging

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


def backoff_delay(attempt: int, base: float, maximum: float = 16.0) -> float:
    """Exponential backoff delay for a zero-based attempt number"""
    return min(maximum, base * (2 ** attempt))


def is_transient_http_error(exc: Exception) -> bool:
    """Network failures, timeouts, rate limits and 5xx are worth retrying; 4xx are not"""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        return True
    return False


async def retry_async(
    call: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    backoff: float = 0.5,
    is_retryable: Callable[[Exception], bool] = is_transient_http_error,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: str = "call"
) -> T:
    """
    Await call() until it succeeds, at most max_attempts times.

    Sleeps backoff * 2**attempt between attempts. Errors rejected by
    is_retryable, and the error of the final attempt, propagate unchanged.
    """
    attempts = max(1, max_attempts)
    for attempt in range(attempts):
        try:
            return await call()
        except Exception as exc:
            if attempt + 1 >= attempts or not is_retryable(exc):
                raise
            delay = backoff_delay(attempt, backoff)
            logger.warning(f"{description} failed ({exc!r}), retrying in {delay:.2f}s "
                           f"[attempt {attempt + 1}/{attempts}]")
            await sleep(delay)
    raise RuntimeError("unreachable")
