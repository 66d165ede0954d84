"""
HTTP helpers.

This module centralizes the minimal HTTP client logic used by ingestion adapters.

Design goals:
- Small surface area (async POST JSON).
- Deterministic defaults (timeout + User-Agent).
- Raise on non-2xx so callers can map status codes onto the upstream error taxonomy.
"""

from __future__ import annotations

from typing import Any

import httpx


DEFAULT_USER_AGENT = "placescout/0.1.0 (+https://local)"


async def post_json(
    url: str,
    *,
    payload: dict[str, Any],
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 10,
) -> Any:
    """POST `payload` as a JSON body and return the decoded JSON response.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If the response body is not valid JSON.
    """
    request_headers = {"User-Agent": DEFAULT_USER_AGENT, "Accept": "application/json"}
    if headers:
        request_headers.update(headers)

    async with httpx.AsyncClient(timeout=timeout_seconds) as client:
        resp = await client.post(url, json=payload, headers=request_headers)
        resp.raise_for_status()
        return resp.json()


def parse_retry_after_seconds(value: str | None) -> float | None:
    """Parse a `Retry-After` header given in seconds; HTTP-date values are ignored."""
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return max(0.0, seconds)
