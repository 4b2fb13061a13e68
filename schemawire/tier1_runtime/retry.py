"""
schemawire.tier1_runtime.retry
────────────────────────────────
Retry/backoff policy with jitter for registry calls.
Backed by Tenacity. Only errors flagged ``retryable`` are retried, so a
definitive registry answer (not found, rejected) is never repeated.

Usage:
    @retry_policy(max_attempts=5)
    async def fetch():
        ...
"""
from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any

from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from schemawire.tier0_core.errors import SchemaWireError


def _is_retryable(exc: BaseException) -> bool:
    """Return True if the exception should be retried."""
    if isinstance(exc, SchemaWireError):
        return exc.retryable
    return False


def retry_policy(
    max_attempts: int = 3,
    min_wait: float = 0.2,
    max_wait: float = 5.0,
    jitter: float = 0.5,
) -> Callable:
    """
    Decorator applying exponential backoff with jitter to a coroutine function.

    Args:
        max_attempts: Total number of attempts (including first).
        min_wait:     Minimum wait seconds between retries.
        max_wait:     Maximum wait seconds between retries.
        jitter:       Maximum random seconds added to each wait.
    """
    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_exponential(min=min_wait, max=max_wait) + wait_random(0, jitter),
                retry=retry_if_exception(_is_retryable),
                reraise=True,
            ):
                with attempt:
                    return await fn(*args, **kwargs)

        return wrapper
    return decorator


__all__ = ["retry_policy"]
