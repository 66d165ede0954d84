"""
Bounded, retried upstream calls.

Every suspension point of discovery (place search, mood analysis) goes through
`call_upstream`:
- each attempt runs under `asyncio.wait_for`; a timeout is an upstream failure, never
  "zero results"
- `UpstreamUnavailable` is retried with exponential backoff `min(max, base * 2**attempt)`
- `RateLimited` starts from a longer base delay and honors the server's `retry_after`
- anything else (including `UpstreamRejected`) propagates immediately
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from placescout.config.settings import RetrySettings
from placescout.core.errors import RateLimited, UpstreamUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(retry: RetrySettings, attempt: int, exc: UpstreamUnavailable) -> float:
    """Delay before retry number `attempt + 1` for the given failure."""
    if isinstance(exc, RateLimited):
        base = float(retry.rate_limited_base_delay_seconds)
    else:
        base = float(retry.base_delay_seconds)
    delay = min(float(retry.max_delay_seconds), base * (2**attempt))
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        delay = max(delay, float(retry_after))
    return delay


async def call_upstream(
    call: Callable[[], Awaitable[T]],
    *,
    retry: RetrySettings,
    timeout_seconds: float,
    label: str,
) -> T:
    max_attempts = int(retry.max_attempts)

    for attempt in range(max_attempts + 1):
        try:
            return await asyncio.wait_for(call(), timeout=timeout_seconds)
        except asyncio.TimeoutError as exc:
            failure: UpstreamUnavailable = UpstreamUnavailable(
                f"{label} timed out after {timeout_seconds:.1f}s"
            )
            failure.__cause__ = exc
        except UpstreamUnavailable as exc:
            failure = exc

        if attempt >= max_attempts:
            raise failure

        delay = backoff_delay(retry, attempt, failure)
        logger.warning(
            "%s failed (%s); retrying in %.2fs (attempt %s/%s)",
            label,
            failure,
            delay,
            attempt + 1,
            max_attempts,
        )
        await asyncio.sleep(delay)

    raise RuntimeError(f"{label} failed without an exception (unexpected).")
