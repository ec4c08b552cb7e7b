# src/llm/retry.py - v3
"""Bounded retry policy with exponential backoff and per-call timeout.

Any provider variant composes a ``RetryPolicy`` instead of hand-rolling its
own loop. Configuration errors are raised immediately: retrying cannot fix
a stopped service or a missing model.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from iconnormalizer.core.errors import (
    ProviderConfigurationError,
    ProviderTimeoutError,
    RetryExhaustedError,
    TransientProviderError,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff curve for one backend call."""

    max_attempts: int = 3
    base_delay_s: float = 1.0
    backoff_factor: float = 1.5
    max_delay_s: float = 10.0
    jitter: bool = False

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based), capped."""
        delay = min(self.base_delay_s * (self.backoff_factor ** attempt), self.max_delay_s)
        if self.jitter:
            delay *= 0.5 + random.random()  # noqa: S311
        return delay


def classify_error(error: BaseException) -> str:
    """Classify an exception as fatal, timeout, or transient."""
    if isinstance(error, ProviderConfigurationError):
        return "fatal"
    if isinstance(error, (ProviderTimeoutError, asyncio.TimeoutError)):
        return "timeout"
    if isinstance(error, TransientProviderError):
        return "transient"
    return "unknown"


async def call_with_timeout(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    timeout_s: float | None = None,
    **kwargs: Any,
) -> Any:
    """Race a call against a deadline; the call is cancelled on timeout."""
    if timeout_s is None:
        return await fn(*args, **kwargs)
    try:
        return await asyncio.wait_for(fn(*args, **kwargs), timeout=timeout_s)
    except asyncio.TimeoutError as exc:
        raise ProviderTimeoutError(timeout_s) from exc


async def run_with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    policy: RetryPolicy,
    label: str = "call",
    timeout_s: float | None = None,
    sleep: Sleep = asyncio.sleep,
    **kwargs: Any,
) -> Any:
    """Execute an async function under a retry policy.

    Raises:
        ProviderConfigurationError: Immediately, never retried.
        RetryExhaustedError: If every attempt failed.
    """
    attempts = 0
    while True:
        try:
            return await call_with_timeout(fn, *args, timeout_s=timeout_s, **kwargs)
        except ProviderConfigurationError:
            raise
        except Exception as e:
            attempts += 1
            error_type = classify_error(e)
            if attempts >= policy.max_attempts:
                raise RetryExhaustedError(label, attempts, e) from e

            delay = policy.delay_for(attempts - 1)
            logger.warning(
                "%s: %s (attempt %d/%d), retrying in %.1fs",
                label, error_type, attempts, policy.max_attempts, delay,
            )
            await sleep(delay)
