"""
Place catalog loader.

The offline catalogs are local JSON files:
- `data/catalogs/places.json`: place candidates used by `CatalogPlaceSearch`
- `data/catalogs/advertised.json`: operator-curated advertised entries

We validate them into typed Pydantic models so discovery code can assume a consistent
shape (normalized types, bounded ratings, price tiers 0..4).
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import TypeAdapter

from placescout.core.env import resolve_project_path
from placescout.domain.models import AdvertisedRecord, PlaceCandidate


_PLACES_ADAPTER = TypeAdapter(list[PlaceCandidate])
_ADVERTISED_ADAPTER = TypeAdapter(list[AdvertisedRecord])


def _read_json(path: str | Path):
    resolved = resolve_project_path(path)
    return json.loads(resolved.read_text(encoding="utf-8"))


def load_places(path: str | Path) -> list[PlaceCandidate]:
    """Load and validate a place catalog JSON file."""
    payload = _read_json(path)
    if isinstance(payload, dict):
        payload = payload.get("places", [])
    return _PLACES_ADAPTER.validate_python(payload)


def load_advertised(path: str | Path | None) -> list[AdvertisedRecord]:
    """Load advertised entries; a missing path means "no ads"."""
    if not path:
        return []
    resolved = resolve_project_path(path)
    if not resolved.is_file():
        return []
    return _ADVERTISED_ADAPTER.validate_python(_read_json(resolved))


def catalog_report(places: list[PlaceCandidate], advertised: list[AdvertisedRecord]) -> dict:
    """Summary used by `placescout check-catalog`: counts, duplicates, id collisions."""
    seen: set[str] = set()
    duplicates: list[str] = []
    type_counts: dict[str, int] = {}
    for p in places:
        if p.id in seen:
            duplicates.append(p.id)
        seen.add(p.id)
        for t in p.types:
            type_counts[t] = type_counts.get(t, 0) + 1

    ad_ids = [a.place.id for a in advertised]
    return {
        "place_count": len(places),
        "advertised_count": len(advertised),
        "duplicate_place_ids": sorted(set(duplicates)),
        "advertised_ids_in_catalog": sorted(set(ad_ids) & seen),
        "missing_rating": sum(1 for p in places if p.rating is None),
        "missing_price_tier": sum(1 for p in places if p.price_tier is None),
        "type_counts": dict(sorted(type_counts.items(), key=lambda kv: (-kv[1], kv[0]))),
    }
