"""
Advertised-place source.

A static, operator-curated list (`data/catalogs/advertised.json`) queried by category and
proximity. Discovery treats it as read-only input: it decides itself whether an entry is
eligible for a given pool (never shown before, no id collision with organic results).
"""

from __future__ import annotations

from placescout.catalog.loader import load_advertised
from placescout.config.settings import Settings
from placescout.core.geo import haversine_m
from placescout.domain.models import AdvertisedRecord, Category, GeoPoint


class StaticAdvertisedSource:
    def __init__(self, records: list[AdvertisedRecord]):
        self._records = list(records)

    @classmethod
    def from_settings(cls, settings: Settings) -> "StaticAdvertisedSource":
        return cls(load_advertised(settings.catalog.advertised_path))

    def eligible(self, category: Category, origin: GeoPoint, radius_m: float) -> list[AdvertisedRecord]:
        """Entries for `category` within `radius_m`, nearest first."""
        hits: list[tuple[float, AdvertisedRecord]] = []
        for rec in self._records:
            if category not in rec.categories:
                continue
            dist = haversine_m(origin, rec.place.location)
            if dist <= radius_m:
                hits.append((dist, rec))
        hits.sort(key=lambda h: h[0])
        return [rec for _, rec in hits]
