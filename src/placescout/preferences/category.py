"""Category resolver. Category is the one hard constraint: weight 1.0, never relaxed."""

from __future__ import annotations

from placescout.domain.models import Category
from placescout.preferences.base import PreferenceResolver

FOOD_TYPES = frozenset(
    {
        "restaurant",
        "cafe",
        "bar",
        "bakery",
        "food",
        "meal_delivery",
        "meal_takeaway",
        "night_club",
        "liquor_store",
        "convenience_store",
        "supermarket",
    }
)

ACTIVITY_TYPES = frozenset(
    {
        "park",
        "museum",
        "art_gallery",
        "movie_theater",
        "stadium",
        "casino",
        "gym",
        "spa",
        "bowling_alley",
        "amusement_park",
        "zoo",
        "aquarium",
        "golf_course",
        "skate_park",
        "swimming_pool",
        "playground",
        "tourist_attraction",
        "book_store",
        "shopping_mall",
        "library",
        "clothing_store",
        "shoe_store",
        "department_store",
        "electronics_store",
        "home_goods_store",
        "hardware_store",
        "florist",
        "jewelry_store",
        "sporting_goods_store",
        "pet_store",
        "bicycle_store",
        "hair_care",
        "beauty_salon",
        "university",
        "hindu_temple",
        "church",
        "mosque",
        "synagogue",
        "rv_park",
        "campground",
    }
)

CATEGORY_TYPES: dict[str, frozenset[str]] = {
    "food": FOOD_TYPES,
    "activity": ACTIVITY_TYPES,
    "something-new": FOOD_TYPES | ACTIVITY_TYPES,
}


class CategoryResolver(PreferenceResolver[Category]):
    dimension = "category"

    def __init__(self) -> None:
        super().__init__(strictness=1.0, rank=None)

    def preferred_place_types(self, value: Category) -> frozenset[str]:
        return CATEGORY_TYPES[value]

    def weight(self, value: Category | None) -> float:
        return 1.0

    def relaxation_rank(self, value: Category | None) -> int | None:
        return None

    def matches(self, value: Category, place_types: list[str] | frozenset[str]) -> bool:
        """Type overlap check; places without any types are not excluded."""
        if not place_types:
            return True
        return not CATEGORY_TYPES[value].isdisjoint(place_types)
