"""
Filter normalizer.

UI payloads arrive loosely typed: camelCase or snake_case keys, legacy enum labels
(`with-bae`, `barkada`, `PP`), numbers as strings, out-of-range sliders. `normalize`
turns them into a frozen `FilterSet` before anything else runs.

Rules:
- only the origin can make a payload invalid (`InvalidOrigin`)
- `mood` / `distance_range` are clamped into 0..100 (warning, not error)
- unknown optional values are dropped with a warning; an unknown category falls back to
  `something-new`
- the origin is rounded to 4 decimals (~11 m) so GPS jitter maps onto the same pool
- the signature is a SHA-256 of the canonical fields with sorted keys (no time component)
"""

from __future__ import annotations

import json
import logging
import math
from hashlib import sha256
from typing import Any, Mapping

from placescout.config.settings import get_settings
from placescout.core.errors import InvalidOrigin
from placescout.domain.models import FilterSet, FilterWarning, GeoPoint
from placescout.preferences import Resolvers, build_resolvers

logger = logging.getLogger(__name__)

ORIGIN_DECIMALS = 4
DEFAULT_MOOD = 50
DEFAULT_DISTANCE_RANGE = 50
DEFAULT_CATEGORY = "something-new"

CATEGORY_ALIASES = {
    "food": "food",
    "activity": "activity",
    "activities": "activity",
    "something-new": "something-new",
    "something_new": "something-new",
    "somethingnew": "something-new",
    "new": "something-new",
}
SOCIAL_ALIASES = {
    "solo": "solo",
    "alone": "solo",
    "paired": "paired",
    "pair": "paired",
    "couple": "paired",
    "with-bae": "paired",
    "with_bae": "paired",
    "group": "group",
    "barkada": "group",
    "friends": "group",
}
BUDGET_ALIASES = {
    "low": "low",
    "p": "low",
    "$": "low",
    "mid": "mid",
    "medium": "mid",
    "pp": "mid",
    "$$": "mid",
    "high": "high",
    "ppp": "high",
    "$$$": "high",
}
TIME_ALIASES = {
    "morning": "morning",
    "afternoon": "afternoon",
    "night": "night",
    "evening": "night",
    "any": "any",
    "anytime": "any",
}

_KEYS = {
    "category": ("category",),
    "mood": ("mood", "moodScore", "mood_score"),
    "social_context": ("socialContext", "social_context", "social"),
    "budget": ("budget",),
    "time_of_day": ("timeOfDay", "time_of_day", "time"),
    "distance_range": ("distanceRange", "distance_range", "distance"),
    "origin": ("origin", "location", "userLocation", "user_location"),
}


def _lookup(raw: Mapping[str, Any], field: str) -> Any:
    for key in _KEYS[field]:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def _percent(raw: Mapping[str, Any], field: str, default: int, warnings: list[FilterWarning]) -> int:
    value = _lookup(raw, field)
    number = _as_float(value)
    if number is None:
        message = f"{field} missing or not a number; using {default}"
        warnings.append(FilterWarning(code="defaulted", field=field, message=message))
        logger.info("Filter %s", message)
        return default

    clamped = max(0.0, min(100.0, number))
    if clamped != number:
        message = f"{field}={value!r} clamped to {clamped:g}"
        warnings.append(FilterWarning(code="clamped", field=field, message=message))
        logger.warning("Filter %s", message)
    return int(round(clamped))


def _enum(
    raw: Mapping[str, Any], field: str, aliases: Mapping[str, str], warnings: list[FilterWarning]
) -> str | None:
    value = _lookup(raw, field)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    canonical = aliases.get(str(value).strip().lower())
    if canonical is None:
        message = f"unknown {field} {value!r} ignored"
        warnings.append(FilterWarning(code="dropped", field=field, message=message))
        logger.warning("Filter %s", message)
    return canonical


def _category(raw: Mapping[str, Any], warnings: list[FilterWarning]) -> str:
    value = _lookup(raw, "category")
    canonical = CATEGORY_ALIASES.get(str(value).strip().lower()) if value is not None else None
    if canonical is None:
        message = f"category {value!r} not recognised; using {DEFAULT_CATEGORY!r}"
        warnings.append(FilterWarning(code="defaulted", field="category", message=message))
        logger.warning("Filter %s", message)
        return DEFAULT_CATEGORY
    return canonical


def _origin(raw: Mapping[str, Any]) -> GeoPoint:
    origin = _lookup(raw, "origin")
    if origin is None and ("lat" in raw or "latitude" in raw):
        origin = raw

    lat_raw: Any = None
    lon_raw: Any = None
    if isinstance(origin, Mapping):
        lat_raw = next((origin[k] for k in ("lat", "latitude") if origin.get(k) is not None), None)
        lon_raw = next(
            (origin[k] for k in ("lng", "lon", "long", "longitude") if origin.get(k) is not None),
            None,
        )
    elif isinstance(origin, (list, tuple)) and len(origin) == 2:
        lat_raw, lon_raw = origin
    elif origin is None:
        raise InvalidOrigin("origin is required")

    lat = _as_float(lat_raw)
    lon = _as_float(lon_raw)
    if lat is None or lon is None:
        raise InvalidOrigin("origin needs numeric latitude and longitude", lat=lat_raw, lon=lon_raw)
    if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lon <= 180.0):
        raise InvalidOrigin(f"origin out of bounds: lat={lat}, lon={lon}", lat=lat, lon=lon)
    return GeoPoint(lat=round(lat, ORIGIN_DECIMALS), lon=round(lon, ORIGIN_DECIMALS))


def query_signature(canonical_fields: Mapping[str, Any]) -> str:
    """Stable hash of canonical filter fields (order-independent)."""
    text = json.dumps(canonical_fields, sort_keys=True, separators=(",", ":"), ensure_ascii=True)
    return sha256(text.encode("utf-8")).hexdigest()


def normalize(
    raw: Mapping[str, Any] | FilterSet, *, resolvers: Resolvers | None = None
) -> tuple[FilterSet, list[FilterWarning]]:
    """Validate and canonicalize a raw filter payload.

    Raises:
        InvalidOrigin: if the origin is missing, non-numeric, or out of bounds.
    """
    if isinstance(raw, FilterSet):
        return raw, []
    if not isinstance(raw, Mapping):
        raise InvalidOrigin("filters must be a mapping that includes an origin")

    warnings: list[FilterWarning] = []
    origin = _origin(raw)
    fields = {
        "category": _category(raw, warnings),
        "mood": _percent(raw, "mood", DEFAULT_MOOD, warnings),
        "social_context": _enum(raw, "social_context", SOCIAL_ALIASES, warnings),
        "budget": _enum(raw, "budget", BUDGET_ALIASES, warnings),
        "time_of_day": _enum(raw, "time_of_day", TIME_ALIASES, warnings),
        "distance_range": _percent(raw, "distance_range", DEFAULT_DISTANCE_RANGE, warnings),
        "origin": {"lat": origin.lat, "lon": origin.lon},
    }
    filters = FilterSet(**fields, signature=query_signature(fields))

    resolvers = resolvers or build_resolvers(get_settings())
    for a, b in resolvers.conflicts(filters):
        message = f"{a}={getattr(filters, a)!r} rarely matches {b}={getattr(filters, b)!r}"
        warnings.append(FilterWarning(code="incompatible", field=a, message=message))
        logger.info("Filter %s", message)

    return filters, warnings
