"""
Error taxonomy for discovery.

- `InvalidOrigin`: fatal, raised by the normalizer, never retried. Also a `ValueError`
  so API/CLI layers that already map `ValueError` to "bad request" keep working.
- `UpstreamUnavailable`: transient upstream failure (5xx, transport error, timeout).
  Retried with exponential backoff, then surfaced as the `ERROR` loading state.
- `RateLimited`: an `UpstreamUnavailable` with a longer initial backoff and an optional
  server-provided `retry_after`.
- `UpstreamRejected`: the upstream refused the request (4xx other than 429). Not retried.

Scarcity of results is not an error: it ends in `LIMIT_REACHED`.
"""

from __future__ import annotations


class PlaceScoutError(Exception):
    """Base class for all errors raised by placescout."""


class InvalidOrigin(PlaceScoutError, ValueError):
    def __init__(self, message: str, *, lat: object = None, lon: object = None):
        super().__init__(message)
        self.lat = lat
        self.lon = lon


class UpstreamError(PlaceScoutError):
    """Failure of an external capability (place search, mood analysis)."""

    retryable = False


class UpstreamUnavailable(UpstreamError):
    retryable = True


class RateLimited(UpstreamUnavailable):
    def __init__(self, message: str = "upstream rate limited", *, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamRejected(UpstreamError):
    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
