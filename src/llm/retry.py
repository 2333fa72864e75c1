# src/llm/retry.py — v2
"""Optional bounded retry around upstream calls, with exponential backoff.

Only transient failures are retried: timeouts, transport errors, rate
limiting (429) and upstream server errors (5xx). With the default
``max_retries=0`` every call is attempted exactly once.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from anthropic_proxy.core.errors import (
    ProviderError,
    ProxyError,
    TransportError,
    UpstreamTimeoutError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for a specific error type."""

    max_retries: int
    base_delay_s: float
    backoff_factor: float = 2.0
    jitter: bool = True


def build_retry_configs(max_retries: int) -> dict[str, RetryConfig]:
    """Per-error-type policy for a global retry budget (0 disables retry)."""
    if max_retries <= 0:
        return {}
    return {
        "timeout": RetryConfig(max_retries=max_retries, base_delay_s=1.0, backoff_factor=1.0),
        "transport": RetryConfig(max_retries=max_retries, base_delay_s=1.0),
        "rate_limit": RetryConfig(max_retries=max_retries, base_delay_s=2.0),
        "server_error": RetryConfig(max_retries=max_retries, base_delay_s=5.0),
    }


def classify_error(error: Exception) -> str | None:
    """Classify an exception into a retry error type, None if not retryable."""
    if isinstance(error, UpstreamTimeoutError):
        return "timeout"
    if isinstance(error, TransportError):
        return "transport"
    if isinstance(error, ProviderError):
        if error.upstream_status == 429:
            return "rate_limit"
        if error.upstream_status >= 500:
            return "server_error"
    return None


def _compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given attempt (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    retry_configs: dict[str, RetryConfig] | None = None,
    **kwargs: Any,
) -> T:
    """Execute an async function with retry logic.

    Raises:
        ProxyError: The last error once retries are exhausted, or the first
            error that is not retryable.
    """
    configs = retry_configs or {}
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except ProxyError as e:
            error_type = classify_error(e)
            attempts += 1
            config = configs.get(error_type) if error_type else None

            if config is None or attempts > config.max_retries:
                raise

            delay = _compute_delay(config, attempts - 1)
            logger.warning(
                "Upstream %s (attempt %d/%d), retrying in %.1fs",
                error_type, attempts, config.max_retries, delay,
            )
            await asyncio.sleep(delay)
