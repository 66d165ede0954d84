import pytest

from placescout.config.settings import get_settings
from placescout.discovery.normalizer import normalize
from placescout.preferences import build_resolvers


@pytest.fixture
def resolvers():
    return build_resolvers(get_settings())


def test_distance_mapping_is_monotonic_and_non_linear(resolvers):
    d = resolvers.distance
    values = [d.base_meters(p) for p in range(0, 101)]

    assert values == sorted(values)
    assert d.base_meters(0) == 150
    assert d.base_meters(10) == 250
    assert d.base_meters(20) == pytest.approx(625)
    assert d.base_meters(100) == 20000
    # Near-field granularity is much finer than far-field.
    assert d.base_meters(10) - d.base_meters(0) < d.base_meters(100) - d.base_meters(90)


def test_distance_range_bounds_are_monotonic(resolvers):
    ranges = [resolvers.distance.meters_range(p) for p in range(0, 101)]
    assert all(lo <= hi for lo, hi in ranges)
    assert [lo for lo, _ in ranges] == sorted(lo for lo, _ in ranges)
    assert [hi for _, hi in ranges] == sorted(hi for _, hi in ranges)
    assert resolvers.distance.meters_range(20)[1] == pytest.approx(625)


def test_mood_alignment_is_symmetric_monotonic_and_saturates(resolvers):
    mood = resolvers.mood

    assert mood.alignment(50, 50) == 1.0
    assert mood.alignment(50, 65) == pytest.approx(0.5)
    assert mood.alignment(65, 50) == mood.alignment(50, 65)
    assert mood.alignment(50, 80) == 0.0
    assert mood.alignment(0, 100) == 0.0

    scores = [mood.alignment(50, 50 + d) for d in range(0, 50)]
    assert scores == sorted(scores, reverse=True)


def test_mood_bands(resolvers):
    mood = resolvers.mood
    assert mood.band(0) == "chill"
    assert mood.band(33.5) == "chill"
    assert mood.band(34) == "neutral"
    assert mood.band(66) == "neutral"
    assert mood.band(67) == "hype"
    assert mood.band(100) == "hype"


def test_mood_inferred_from_place_types(resolvers):
    mood = resolvers.mood
    assert mood.infer_from_types(["night_club", "restaurant"]) == 80
    assert mood.infer_from_types(["spa"]) == 20
    assert mood.infer_from_types(["restaurant"]) == 50
    assert mood.infer_from_types([]) == 50


def test_category_is_never_relaxable(resolvers):
    assert resolvers.category.weight("food") == 1.0
    assert resolvers.category.relaxation_rank("food") is None


def test_relaxation_order_follows_strictness(resolvers):
    filters, _ = normalize(
        {
            "category": "food",
            "mood": 60,
            "socialContext": "group",
            "budget": "mid",
            "timeOfDay": "night",
            "origin": {"lat": 0, "lng": 0},
        }
    )
    assert resolvers.relaxable(filters) == ["time_of_day", "social_context", "mood", "budget"]


def test_unset_dimensions_are_not_relaxable(resolvers):
    filters, _ = normalize({"category": "food", "mood": 60, "timeOfDay": "any", "origin": {"lat": 0, "lng": 0}})
    assert resolvers.time_of_day.weight("any") == 0.0
    assert resolvers.relaxable(filters) == ["mood"]


def test_relaxation_order_is_configurable():
    settings = get_settings()
    strictness = settings.preferences.strictness.model_copy(update={"budget": 0.1})
    prefs = settings.preferences.model_copy(update={"strictness": strictness})
    resolvers = build_resolvers(settings.model_copy(update={"preferences": prefs}))

    filters, _ = normalize(
        {"category": "food", "mood": 60, "budget": "mid", "timeOfDay": "night", "origin": {"lat": 0, "lng": 0}}
    )
    assert resolvers.relaxable(filters) == ["budget", "time_of_day", "mood"]


def test_budget_bands_widen_when_relaxed(resolvers):
    budget = resolvers.budget
    assert budget.band("high") == {3, 4}
    assert budget.band("high", relaxed=True) == {2, 3, 4}
    assert budget.band("low", relaxed=True) == {0, 1, 2}
    assert budget.band("mid", relaxed=True) == {1, 2, 3}
    assert budget.matches("high", None)


def test_compatibility_tables(resolvers):
    assert not resolvers.social_context.is_compatible("paired", "budget", "low")
    assert resolvers.social_context.is_compatible("paired", "budget", "high")
    assert not resolvers.social_context.is_compatible("group", "mood", 10)
    assert resolvers.social_context.is_compatible("group", "mood", 90)
    assert not resolvers.mood.is_compatible(90, "time_of_day", "morning")
    assert resolvers.mood.is_compatible(20, "time_of_day", "morning")
    assert resolvers.social_context.is_compatible(None, "budget", "low")


def test_preferred_place_types(resolvers):
    assert "restaurant" in resolvers.category.preferred_place_types("food")
    assert "museum" in resolvers.category.preferred_place_types("activity")
    assert resolvers.category.preferred_place_types("something-new") >= resolvers.category.preferred_place_types("food")
    assert "night_club" in resolvers.mood.preferred_place_types(90)
    assert resolvers.time_of_day.preferred_place_types("any") == frozenset()
