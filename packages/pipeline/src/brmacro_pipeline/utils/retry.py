"""
utils/retry.py — Exponential-backoff retry decorator for async HTTP calls.

Uses tenacity under the hood. Each retry is logged with structlog; once the
attempts are exhausted the last exception propagates unchanged, so the
adapter's own error handling still sees the real httpx error.

Usage:
    from brmacro_pipeline.utils.retry import with_retry

    @with_retry(max_attempts=3, retry_on=(httpx.TransportError,))
    async def _get(self, url: str) -> Any:
        async with httpx.AsyncClient() as client:
            r = await client.get(url)
            r.raise_for_status()
            return r.json()
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

log = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Coroutine[Any, Any, Any]])


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    retry_on: type[Exception] | tuple[type[Exception], ...] = Exception,
) -> Callable[[F], F]:
    """
    Decorator that retries an async function with exponential backoff.

    Delays: base_delay * 2^(attempt-1), capped at max_delay.

    Args:
        max_attempts: Total attempts before re-raising.
        base_delay:   Initial delay in seconds.
        max_delay:    Maximum delay cap in seconds.
        retry_on:     Exception type(s) that trigger a retry; anything else
                      propagates on the first occurrence.
    """

    def decorator(fn: F) -> F:
        attempt_log = log.bind(function=fn.__qualname__)

        def _before_sleep(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            attempt_log.warning(
                "retry_attempt",
                attempt=state.attempt_number,
                max_attempts=max_attempts,
                last_error=str(exc) if exc else None,
            )

        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_exponential(multiplier=base_delay, max=max_delay),
                retry=retry_if_exception_type(retry_on),
                before_sleep=_before_sleep,
                reraise=True,
            ):
                with attempt:
                    return await fn(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
