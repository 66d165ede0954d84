"""Time-of-day resolver. `any` behaves like an unset value."""

from __future__ import annotations

from placescout.domain.models import Dimension, TimeOfDay
from placescout.preferences.base import PreferenceResolver
from placescout.preferences.mood import MoodResolver

TIME_TYPES: dict[str, frozenset[str]] = {
    "morning": frozenset({"cafe", "bakery", "restaurant", "park", "gym"}),
    "afternoon": frozenset({"restaurant", "museum", "art_gallery", "shopping_mall", "park"}),
    "night": frozenset({"restaurant", "bar", "night_club", "movie_theater", "casino"}),
    "any": frozenset(),
}


class TimeOfDayResolver(PreferenceResolver[TimeOfDay]):
    dimension = "time_of_day"

    compatibility = {
        "morning": {"mood": frozenset({"chill", "neutral"})},
    }

    def __init__(self, mood: MoodResolver, *, strictness: float, rank: int | None):
        super().__init__(strictness=strictness, rank=rank)
        self._mood = mood

    def is_set(self, value: TimeOfDay | None) -> bool:
        return value is not None and value != "any"

    def is_compatible(self, value, other_dimension: Dimension, other_value) -> bool:
        if other_dimension == "mood" and other_value is not None:
            other_value = self._mood.band(other_value)
        return super().is_compatible(value, other_dimension, other_value)

    def preferred_place_types(self, value: TimeOfDay) -> frozenset[str]:
        return TIME_TYPES[value]

    def wants_open_now(self, value: TimeOfDay | None) -> bool:
        """A concrete time of day asks the upstream for places that are open."""
        return self.is_set(value)

    def matches(self, value: TimeOfDay, place_types: list[str] | frozenset[str], open_now: bool | None) -> bool:
        if not self.is_set(value):
            return True
        if open_now is False:
            return False
        if not place_types:
            return True
        return not TIME_TYPES[value].isdisjoint(place_types)
