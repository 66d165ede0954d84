"""
Mood resolver.

Mood is a 0..100 energy scale (chill -> hype). It is never dropped during relaxation;
instead the admission window is widened (`tolerance` -> `relaxed_tolerance`). Places in
the neutral band are admitted for any requested mood and only lose ranking weight.

Alignment is linear: 1.0 at an exact match, 0.0 once `|candidate - target|` reaches the
tolerance. That keeps it symmetric, monotonic and bounded in [0, 1].
"""

from __future__ import annotations

from typing import Literal, Mapping

from placescout.config.settings import MoodPreferenceSettings
from placescout.preferences.base import PreferenceResolver

MoodBand = Literal["chill", "neutral", "hype"]

BAND_TYPES: dict[str, frozenset[str]] = {
    "chill": frozenset(
        {
            "restaurant",
            "cafe",
            "bar",
            "bakery",
            "park",
            "museum",
            "art_gallery",
            "movie_theater",
            "spa",
            "zoo",
            "aquarium",
            "golf_course",
            "swimming_pool",
            "book_store",
            "library",
            "florist",
            "pet_store",
            "hair_care",
            "beauty_salon",
            "hindu_temple",
            "church",
            "mosque",
            "synagogue",
            "rv_park",
            "campground",
        }
    ),
    "neutral": frozenset(
        {
            "restaurant",
            "cafe",
            "bakery",
            "food",
            "meal_delivery",
            "meal_takeaway",
            "liquor_store",
            "convenience_store",
            "supermarket",
            "park",
            "museum",
            "art_gallery",
            "gym",
            "bowling_alley",
            "zoo",
            "aquarium",
            "swimming_pool",
            "tourist_attraction",
            "shopping_mall",
            "clothing_store",
            "department_store",
            "university",
        }
    ),
    "hype": frozenset(
        {
            "restaurant",
            "bar",
            "night_club",
            "stadium",
            "casino",
            "gym",
            "bowling_alley",
            "amusement_park",
            "skate_park",
            "playground",
            "tourist_attraction",
            "shopping_mall",
        }
    ),
}

# Representative scores used when nothing better than place types is known.
INFERRED_MOOD = {"chill": 20.0, "neutral": 50.0, "hype": 80.0}

_HYPE_ONLY = BAND_TYPES["hype"] - BAND_TYPES["chill"]
_CHILL_ONLY = BAND_TYPES["chill"] - BAND_TYPES["hype"]


def clamp_mood(score: float) -> float:
    return max(0.0, min(100.0, float(score)))


class MoodResolver(PreferenceResolver[int]):
    dimension = "mood"

    compatibility = {
        "hype": {
            "social_context": frozenset({"paired", "group"}),
            "budget": frozenset({"mid", "high"}),
            "time_of_day": frozenset({"afternoon", "night", "any"}),
        },
    }

    def __init__(self, cfg: MoodPreferenceSettings, *, strictness: float, rank: int | None):
        super().__init__(strictness=strictness, rank=rank)
        self._cfg = cfg

    @property
    def tolerance(self) -> float:
        return float(self._cfg.tolerance)

    @property
    def relaxed_tolerance(self) -> float:
        return float(self._cfg.relaxed_tolerance)

    def band(self, score: float) -> MoodBand:
        score = clamp_mood(score)
        bands: Mapping[str, tuple[int, int]] = self._cfg.bands
        for name in ("chill", "neutral", "hype"):
            low, high = bands[name]
            # Bands are integer-bounded; fractional scores fall into the band below the gap.
            if low <= score < high + 1:
                return name  # type: ignore[return-value]
        return "hype"

    def compat_key(self, value: int) -> str:
        return self.band(value)

    def preferred_place_types(self, value: int) -> frozenset[str]:
        return BAND_TYPES[self.band(value)]

    def alignment(self, candidate: float, target: float, tolerance: float | None = None) -> float:
        tol = self.tolerance if tolerance is None else float(tolerance)
        distance = abs(clamp_mood(candidate) - clamp_mood(target))
        if distance >= tol:
            return 0.0
        return 1.0 - distance / tol

    def within(self, candidate: float, target: float, *, relaxed: bool = False) -> bool:
        """Admission check used by the pool filter.

        A neutral place (or a neutral request) always passes, as does a place in the same
        band as the request. Anything else has to sit inside the tolerance window, which
        widens once mood is relaxed.
        """
        place_band, wanted_band = self.band(candidate), self.band(target)
        if place_band == wanted_band or "neutral" in (place_band, wanted_band):
            return True
        tol = self.relaxed_tolerance if relaxed else self.tolerance
        return abs(clamp_mood(candidate) - clamp_mood(target)) <= tol

    def infer_from_types(self, place_types: list[str] | frozenset[str]) -> float:
        """Rough mood estimate when no review text (or analyzer) is available."""
        types = set(place_types)
        hype = bool(types & _HYPE_ONLY)
        chill = bool(types & _CHILL_ONLY)
        if hype and not chill:
            return INFERRED_MOOD["hype"]
        if chill and not hype:
            return INFERRED_MOOD["chill"]
        return INFERRED_MOOD["neutral"]
