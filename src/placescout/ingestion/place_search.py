"""
Place search adapters.

- `HttpPlaceSearch`: calls an in-house place-search service over HTTP (httpx). The service
  owns provider specifics (keys, provider place types, paging); we send a small JSON
  request and get candidates back in our own shape.
- `CatalogPlaceSearch`: offline search over a local JSON catalog. Used by the CLI, by the
  API when no service URL is configured, and by tests.

Both raise the upstream error taxonomy from `placescout.core.errors`; retries and timeouts
are applied by the caller (`placescout.ingestion.upstream.call_upstream`).
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from placescout.catalog.loader import load_places
from placescout.config.settings import Settings
from placescout.core.errors import RateLimited, UpstreamRejected, UpstreamUnavailable
from placescout.core.geo import haversine_m
from placescout.core.http import parse_retry_after_seconds, post_json
from placescout.domain.models import GeoPoint, PlaceCandidate

logger = logging.getLogger(__name__)


def _parse_candidates(payload: Any) -> list[PlaceCandidate]:
    """Parse a service response; malformed items are skipped, not fatal."""
    items = payload.get("places") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise UpstreamRejected("Unexpected place search response shape; expected a list.")

    out: list[PlaceCandidate] = []
    for item in items:
        try:
            out.append(PlaceCandidate.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed place candidate: %s", exc.errors()[:1])
    return out


class HttpPlaceSearch:
    def __init__(self, settings: Settings):
        cfg = settings.place_search
        if not cfg.base_url:
            raise ValueError("place_search.base_url is not configured")
        self._url = cfg.base_url.rstrip("/") + "/places/search"
        self._api_key = cfg.api_key
        self._max_results = int(cfg.max_results)
        self._timeout_seconds = float(settings.app.http_timeout_seconds)

    async def search(
        self,
        origin: GeoPoint,
        radius_m: float,
        place_types: frozenset[str],
        *,
        price_tiers: frozenset[int] | None = None,
        open_now: bool | None = None,
    ) -> list[PlaceCandidate]:
        payload: dict[str, Any] = {
            "lat": origin.lat,
            "lon": origin.lon,
            "radius_m": round(float(radius_m)),
            "types": sorted(place_types),
            "max_results": self._max_results,
        }
        if price_tiers:
            payload["price_tiers"] = sorted(price_tiers)
        if open_now is not None:
            payload["open_now"] = bool(open_now)

        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else None
        try:
            data = await post_json(
                self._url, payload=payload, headers=headers, timeout_seconds=self._timeout_seconds
            )
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 429:
                raise RateLimited(
                    "place search rate limited",
                    retry_after=parse_retry_after_seconds(exc.response.headers.get("Retry-After")),
                ) from exc
            if status >= 500:
                raise UpstreamUnavailable(f"place search failed with status={status}") from exc
            raise UpstreamRejected(
                f"place search rejected the request with status={status}", status_code=status
            ) from exc
        except httpx.TransportError as exc:
            raise UpstreamUnavailable(f"place search transport error: {exc}") from exc
        except ValueError as exc:
            raise UpstreamRejected("place search returned invalid JSON") from exc

        return _parse_candidates(data)


class CatalogPlaceSearch:
    """Radius/type/price search over an in-memory list of candidates."""

    def __init__(self, places: list[PlaceCandidate], *, max_results: int | None = None):
        self._places = list(places)
        self._max_results = max_results

    @classmethod
    def from_settings(cls, settings: Settings) -> "CatalogPlaceSearch":
        return cls(load_places(settings.catalog.places_path), max_results=settings.place_search.max_results)

    async def search(
        self,
        origin: GeoPoint,
        radius_m: float,
        place_types: frozenset[str],
        *,
        price_tiers: frozenset[int] | None = None,
        open_now: bool | None = None,
    ) -> list[PlaceCandidate]:
        hits: list[tuple[float, PlaceCandidate]] = []
        for place in self._places:
            dist = haversine_m(origin, place.location)
            if dist > radius_m:
                continue
            if place_types and place.types and place_types.isdisjoint(place.types):
                continue
            if price_tiers and place.price_tier is not None and place.price_tier not in price_tiers:
                continue
            if open_now and place.open_now is False:
                continue
            hits.append((dist, place))

        hits.sort(key=lambda h: h[0])
        out = [p for _, p in hits]
        return out[: self._max_results] if self._max_results else out
