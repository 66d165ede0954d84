"""Social context resolver (solo / paired / group)."""

from __future__ import annotations

from placescout.domain.models import Dimension, SocialContext
from placescout.preferences.base import PreferenceResolver
from placescout.preferences.mood import MoodResolver

SOCIAL_TYPES: dict[str, frozenset[str]] = {
    "solo": frozenset(
        {
            "cafe",
            "bakery",
            "food",
            "meal_takeaway",
            "park",
            "museum",
            "art_gallery",
            "library",
            "book_store",
            "gym",
            "spa",
            "golf_course",
            "swimming_pool",
            "zoo",
            "aquarium",
            "university",
            "hair_care",
            "beauty_salon",
            "supermarket",
            "liquor_store",
            "convenience_store",
        }
    ),
    "paired": frozenset(
        {
            "restaurant",
            "cafe",
            "movie_theater",
            "park",
            "spa",
            "art_gallery",
            "museum",
            "zoo",
            "aquarium",
            "tourist_attraction",
            "shopping_mall",
        }
    ),
    "group": frozenset(
        {
            "restaurant",
            "cafe",
            "bar",
            "stadium",
            "casino",
            "bowling_alley",
            "amusement_park",
            "skate_park",
            "shopping_mall",
            "night_club",
            "playground",
            "tourist_attraction",
            "campground",
            "rv_park",
        }
    ),
}


class SocialContextResolver(PreferenceResolver[SocialContext]):
    dimension = "social_context"

    compatibility = {
        "paired": {
            "budget": frozenset({"mid", "high"}),
            "time_of_day": frozenset({"afternoon", "night", "any"}),
        },
        "group": {
            "mood": frozenset({"neutral", "hype"}),
            "time_of_day": frozenset({"afternoon", "night", "any"}),
        },
    }

    def __init__(self, mood: MoodResolver, *, strictness: float, rank: int | None):
        super().__init__(strictness=strictness, rank=rank)
        self._mood = mood

    def preferred_place_types(self, value: SocialContext) -> frozenset[str]:
        return SOCIAL_TYPES[value]

    def is_compatible(self, value, other_dimension: Dimension, other_value) -> bool:
        if other_dimension == "mood" and other_value is not None:
            other_value = self._mood.band(other_value)
        return super().is_compatible(value, other_dimension, other_value)

    def matches(self, value: SocialContext, place_types: list[str] | frozenset[str]) -> bool:
        if not place_types:
            return True
        return not SOCIAL_TYPES[value].isdisjoint(place_types)
