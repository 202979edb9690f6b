"""Retry with exponential backoff for transient provider failures."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from spritestudio.logging import get_logger

logger = get_logger("providers")

T = TypeVar("T")

# Substrings of error messages that indicate a retryable condition.
TRANSIENT_MARKERS: tuple[str, ...] = (
    "429",
    "500",
    "503",
    "rate limit",
    "unavailable",
    "timeout",
    "timed out",
)


def is_transient(exc: BaseException) -> bool:
    """Return True if *exc* looks like a rate limit, outage, or timeout."""
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    status = getattr(exc, "status_code", None) or getattr(exc, "code", None)
    if isinstance(status, int) and status in (429, 500, 502, 503, 504):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)


async def with_retries(
    call: Callable[[], Awaitable[T]],
    attempts: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await *call*, retrying transient failures with exponential backoff.

    Waits ``base_delay * 2**n`` seconds before retry *n* (0-based).
    Non-transient errors and the last transient error are re-raised as-is.

    Args:
        call: Zero-argument coroutine factory.
        attempts: Total attempts including the first (>= 1).
        base_delay: Delay before the first retry, in seconds.
        sleep: Awaitable sleep function (injectable for tests).

    Returns:
        The result of the first successful call.
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return await call()
        except Exception as exc:
            if attempt == attempts - 1 or not is_transient(exc):
                raise
            delay = base_delay * (2**attempt)
            logger.warning(
                "Provider call failed (attempt %d/%d), retrying in %.1fs: %s",
                attempt + 1,
                attempts,
                delay,
                exc,
            )
            await sleep(delay)
    raise AssertionError("unreachable")
