"""
External capability interfaces.

Discovery only depends on these protocols. Concrete adapters live next to this module
(`place_search`, `mood_analysis`, `advertised`) and in `placescout.core.cache`; tests use
small in-file stubs.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from placescout.domain.models import AdvertisedRecord, Category, GeoPoint, PlaceCandidate


@runtime_checkable
class PlaceSearch(Protocol):
    async def search(
        self,
        origin: GeoPoint,
        radius_m: float,
        place_types: frozenset[str],
        *,
        price_tiers: frozenset[int] | None = None,
        open_now: bool | None = None,
    ) -> list[PlaceCandidate]:
        """Return candidates within `radius_m` of `origin`.

        Raises `placescout.core.errors.UpstreamError` subclasses on failure.
        """
        ...


@runtime_checkable
class MoodAnalyzer(Protocol):
    async def analyze_mood(self, review_texts: list[str]) -> float:
        """Score review text on the 0..100 mood scale."""
        ...


@runtime_checkable
class AdvertisedSource(Protocol):
    def eligible(self, category: Category, origin: GeoPoint, radius_m: float) -> list[AdvertisedRecord]:
        ...


@runtime_checkable
class ResultCache(Protocol):
    def get(self, key: str) -> list[PlaceCandidate] | None:
        ...

    def put(self, key: str, candidates: list[PlaceCandidate]) -> None:
        ...
