import asyncio

import pytest

from placescout.config.settings import get_settings
from placescout.core.errors import InvalidOrigin, UpstreamUnavailable
from placescout.discovery.orchestrator import DiscoveryOrchestrator
from placescout.domain.models import (
    AdvertisedPlace,
    AdvertisedRecord,
    CampaignInfo,
    GeoPoint,
    LoadingState,
    PlaceCandidate,
)

ORIGIN = {"lat": 14.5509, "lng": 121.0509}
FILTERS = {"category": "food", "mood": 85, "budget": "high", "distanceRange": 20, "origin": ORIGIN}


def _settings(**discovery):
    settings = get_settings()
    retry = settings.discovery.retry.model_copy(
        update={
            "max_attempts": 0,
            "base_delay_seconds": 0.0,
            "rate_limited_base_delay_seconds": 0.0,
            "max_delay_seconds": 0.0,
        }
    )
    updated = settings.discovery.model_copy(update={"retry": retry, **discovery})
    return settings.model_copy(update={"discovery": updated})


def _candidate(pid: str, **kwargs) -> PlaceCandidate:
    data = {
        "id": pid,
        "name": f"Place {pid}",
        "location": GeoPoint(lat=14.551, lon=121.051),
        "types": ["restaurant", "night_club"],
        "rating": 4.5,
        "review_count": 120,
        "price_tier": 3,
    }
    data.update(kwargs)
    return PlaceCandidate(**data)


class _StubSearch:
    """Returns `results(radius_m)`; optionally sleeps or fails first."""

    def __init__(self, results, *, delay: float = 0.0):
        self._results = results
        self.delay = delay
        self.fail = False
        self.calls: list[float] = []
        self.kwargs: list[dict] = []

    async def search(self, origin, radius_m, place_types, *, price_tiers=None, open_now=None):
        self.calls.append(radius_m)
        self.kwargs.append({"place_types": place_types, "price_tiers": price_tiers, "open_now": open_now})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise UpstreamUnavailable("place search failed with status=503")
        return list(self._results(radius_m))


class _StubAds:
    def __init__(self, records):
        self._records = records

    def eligible(self, category, origin, radius_m):
        return list(self._records)


class _DictCache:
    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def put(self, key, candidates):
        self.data[key] = list(candidates)


def _ad_record(pid: str) -> AdvertisedRecord:
    return AdvertisedRecord(
        place=_candidate(pid, rating=3.0),
        campaign=CampaignInfo(campaign_id=f"camp-{pid}", sponsor="Acme"),
    )


def _n(count: int):
    return lambda _radius: [_candidate(f"p{i}") for i in range(count)]


@pytest.mark.asyncio
async def test_sparse_area_expands_once_then_completes():
    def results(radius_m):
        count = 2 if radius_m < 1000 else 6
        return [_candidate(f"p{i}") for i in range(count)]

    search = _StubSearch(results)
    orch = DiscoveryOrchestrator(_settings(), search)

    result = await orch.discover(FILTERS)

    assert search.calls == [625, 1250]
    assert result.loading_state is LoadingState.COMPLETE
    assert result.expansion.expansion_count == 1
    assert result.expansion.radius_m == 1250
    assert len(result.places) == 4
    assert result.pool.remaining == 2
    assert [e.state for e in result.expansion.events].count(LoadingState.EXPANDING) == 1
    assert search.kwargs[0]["price_tiers"] == frozenset({3, 4})


@pytest.mark.asyncio
async def test_empty_area_reaches_limit_with_bounded_expansions():
    search = _StubSearch(lambda _radius: [])
    orch = DiscoveryOrchestrator(_settings(), search)

    result = await orch.discover({"category": "food", "mood": 50, "distanceRange": 20, "origin": ORIGIN})

    assert result.loading_state is LoadingState.LIMIT_REACHED
    assert result.places == []
    assert result.expansion.expansion_count == 3
    assert result.expansion.relaxed_filters == ["mood"]
    assert result.expansion.filters_relaxed
    # initial, expand, relax mood (pool only), expand, expand
    assert search.calls == [625, 1250, 2500, 5000]


@pytest.mark.asyncio
async def test_enough_results_complete_on_first_search():
    search = _StubSearch(_n(10))
    orch = DiscoveryOrchestrator(_settings(), search)

    result = await orch.discover(FILTERS)

    assert search.calls == [625]
    assert result.loading_state is LoadingState.COMPLETE
    assert result.expansion.expansion_count == 0
    assert len(result.places) == 4
    scores = [p.combined_score for p in result.places]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_next_batches_are_disjoint_and_resume_the_search():
    search = _StubSearch(_n(10))
    orch = DiscoveryOrchestrator(_settings(), search)

    first = await orch.discover(FILTERS)
    second = await orch.get_next_batch(FILTERS)

    assert search.calls == [625]
    assert second.loading_state is LoadingState.COMPLETE
    assert not second.pool.needs_refresh

    third = await orch.get_next_batch(FILTERS)
    ids = [p.id for r in (first, second, third) for p in r.places]

    assert len(ids) == len(set(ids)) == 10
    assert len(third.places) == 2
    assert third.pool.needs_refresh
    assert third.loading_state is LoadingState.LIMIT_REACHED
    # The refill resumed at the pool's radius instead of starting over.
    assert search.calls[1] == 1250
    assert third.expansion.expansion_count == 3


@pytest.mark.asyncio
async def test_concurrent_identical_discover_calls_share_one_search():
    search = _StubSearch(_n(6), delay=0.05)
    orch = DiscoveryOrchestrator(_settings(), search)

    a, b = await asyncio.gather(orch.discover(FILTERS), orch.discover(dict(reversed(list(FILTERS.items())))))

    assert len(search.calls) == 1
    assert [p.id for p in a.places] == [p.id for p in b.places]


@pytest.mark.asyncio
async def test_discover_and_next_batch_racing_share_the_first_search():
    search = _StubSearch(_n(6), delay=0.05)
    orch = DiscoveryOrchestrator(_settings(), search)

    a, b = await asyncio.gather(orch.discover(FILTERS), orch.get_next_batch(FILTERS))

    assert search.calls[0] == 625
    assert search.calls.count(625) == 1
    ids_a = {p.id for p in a.places}
    ids_b = {p.id for p in b.places}
    assert ids_a.isdisjoint(ids_b)
    assert len(ids_a | ids_b) == 6
    # Whoever lost the race does not claim COMPLETE with a short batch.
    for result in (a, b):
        if result.loading_state is LoadingState.COMPLETE:
            assert len(result.places) >= 4
    assert sorted(len(r.places) for r in (a, b)) == [2, 4]


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_abort_shared_work():
    search = _StubSearch(_n(6), delay=0.05)
    orch = DiscoveryOrchestrator(_settings(), search)

    task = asyncio.create_task(orch.discover(FILTERS))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    result = await orch.discover(FILTERS)

    assert len(search.calls) == 1
    assert result.loading_state is LoadingState.COMPLETE
    assert len(result.places) == 4


@pytest.mark.asyncio
async def test_upstream_failure_is_error_and_keeps_pool_progress():
    search = _StubSearch(_n(2))
    orch = DiscoveryOrchestrator(_settings(), search)

    # First search succeeds with 2 results; the expansion search then fails.
    original = search.search

    async def fail_after_first(*args, **kwargs):
        if search.calls:
            search.fail = True
        return await original(*args, **kwargs)

    search.search = fail_after_first
    failed = await orch.discover(FILTERS)

    assert failed.loading_state is LoadingState.ERROR
    assert failed.places == []
    assert "503" in (failed.error or "")
    assert failed.expansion.radius_m == 625
    assert failed.expansion.expansion_count == 0
    assert failed.pool.remaining == 2

    search.search = original
    search.fail = False
    search._results = _n(6)
    recovered = await orch.discover(FILTERS)

    assert recovered.loading_state is LoadingState.COMPLETE
    assert recovered.expansion.expansion_count == 1
    assert search.calls[-1] == 1250
    assert len(recovered.places) == 4


@pytest.mark.asyncio
async def test_timeout_is_an_error_not_an_empty_result():
    search = _StubSearch(_n(6), delay=1.0)
    orch = DiscoveryOrchestrator(_settings(upstream_timeout_seconds=0.01), search)

    result = await orch.discover(FILTERS)

    assert result.loading_state is LoadingState.ERROR
    assert result.places == []
    assert "timed out" in (result.error or "")
    assert len(search.calls) == 1


@pytest.mark.asyncio
async def test_transient_failures_are_retried():
    search = _StubSearch(_n(6))
    attempts = {"n": 0}
    original = search.search

    async def flaky(*args, **kwargs):
        attempts["n"] += 1
        if attempts["n"] == 1:
            raise UpstreamUnavailable("temporary")
        return await original(*args, **kwargs)

    search.search = flaky
    settings = _settings()
    retry = settings.discovery.retry.model_copy(update={"max_attempts": 2})
    settings = settings.model_copy(
        update={"discovery": settings.discovery.model_copy(update={"retry": retry})}
    )
    orch = DiscoveryOrchestrator(settings, search)

    result = await orch.discover(FILTERS)

    assert attempts["n"] == 2
    assert result.loading_state is LoadingState.COMPLETE


@pytest.mark.asyncio
async def test_failing_mood_analysis_falls_back_to_place_types():
    class _BrokenAnalyzer:
        def __init__(self):
            self.calls = 0

        async def analyze_mood(self, review_texts):
            self.calls += 1
            raise UpstreamUnavailable("sentiment service down")

    analyzer = _BrokenAnalyzer()
    search = _StubSearch(lambda _r: [_candidate(f"p{i}", review_snippets=["lively"]) for i in range(6)])
    orch = DiscoveryOrchestrator(_settings(), search, mood_analyzer=analyzer)

    result = await orch.discover(FILTERS)

    assert analyzer.calls == 6
    assert result.loading_state is LoadingState.COMPLETE
    assert all(p.mood_score == 80 for p in result.places)


@pytest.mark.asyncio
async def test_mood_analyzer_scores_are_used_when_available():
    class _Analyzer:
        async def analyze_mood(self, review_texts):
            return 150.0

    search = _StubSearch(lambda _r: [_candidate(f"p{i}", review_snippets=["party"]) for i in range(6)])
    orch = DiscoveryOrchestrator(_settings(), search, mood_analyzer=_Analyzer())

    result = await orch.discover(FILTERS)

    assert all(p.mood_score == 100 for p in result.places)


@pytest.mark.asyncio
async def test_advertised_place_is_inserted_once_per_pool():
    search = _StubSearch(_n(8))
    orch = DiscoveryOrchestrator(_settings(), search, advertised=_StubAds([_ad_record("ad-1")]))

    first = await orch.discover(FILTERS)
    second = await orch.get_next_batch(FILTERS)

    assert [p.id for p in first.places][:4] == [p.id for p in first.places if not p.is_advertised]
    assert len(first.places) == 5
    ad = first.places[4]
    assert isinstance(ad, AdvertisedPlace)
    assert ad.campaign.campaign_id == "camp-ad-1"
    assert not any(p.is_advertised for p in second.places)

    payload = first.model_dump(mode="json")
    assert payload["places"][4]["is_advertised"] is True
    assert payload["places"][4]["campaign"]["sponsor"] == "Acme"


@pytest.mark.asyncio
async def test_advertised_place_sharing_an_organic_id_is_skipped():
    search = _StubSearch(_n(8))
    orch = DiscoveryOrchestrator(_settings(), search, advertised=_StubAds([_ad_record("p1")]))

    result = await orch.discover(FILTERS)

    ids = [p.id for p in result.places]
    assert len(ids) == len(set(ids)) == 4
    assert not any(p.is_advertised for p in result.places)


@pytest.mark.asyncio
async def test_duplicate_upstream_ids_are_served_once():
    search = _StubSearch(lambda _r: [_candidate("dup"), _candidate("dup"), *[_candidate(f"p{i}") for i in range(4)]])
    orch = DiscoveryOrchestrator(_settings(), search)

    result = await orch.discover(FILTERS)

    ids = [p.id for p in result.places]
    assert len(ids) == len(set(ids))
    assert result.pool.total_seen == 5


@pytest.mark.asyncio
async def test_reset_starts_over_and_uses_result_cache():
    search = _StubSearch(_n(6))
    cache = _DictCache()
    orch = DiscoveryOrchestrator(_settings(), search, cache=cache)

    await orch.discover(FILTERS)
    assert orch.reset(FILTERS) is True
    assert orch.reset(FILTERS) is False
    assert len(orch.pools) == 0

    result = await orch.discover(FILTERS)

    assert len(search.calls) == 1
    assert len(cache.data) == 1
    assert result.loading_state is LoadingState.COMPLETE
    assert len(result.places) == 4


@pytest.mark.asyncio
async def test_broken_cache_does_not_fail_discovery():
    class _BrokenCache:
        def get(self, key):
            raise OSError("disk full")

        def put(self, key, candidates):
            raise OSError("disk full")

    search = _StubSearch(_n(6))
    orch = DiscoveryOrchestrator(_settings(), search, cache=_BrokenCache())

    result = await orch.discover(FILTERS)

    assert result.loading_state is LoadingState.COMPLETE
    assert len(search.calls) == 1


@pytest.mark.asyncio
async def test_invalid_origin_raises_before_searching():
    search = _StubSearch(_n(6))
    orch = DiscoveryOrchestrator(_settings(), search)

    with pytest.raises(InvalidOrigin):
        await orch.discover({"category": "food", "origin": {"lat": 120, "lng": 0}})
    assert search.calls == []
    assert len(orch.pools) == 0


@pytest.mark.asyncio
async def test_relaxed_search_widens_upstream_request():
    search = _StubSearch(lambda _r: [])
    orch = DiscoveryOrchestrator(_settings(), search)

    await orch.discover({**FILTERS, "socialContext": "paired", "timeOfDay": "night"})

    # time of day and social context are relaxed before the 2nd and 3rd expansions
    assert len(search.kwargs) == 4
    first, second, last = search.kwargs[0], search.kwargs[2], search.kwargs[-1]
    assert first["open_now"] is True
    assert first["price_tiers"] == frozenset({3, 4})
    assert second["open_now"] is None
    assert second["place_types"] == first["place_types"]
    assert last["place_types"] > first["place_types"]


@pytest.mark.asyncio
async def test_sparse_area_with_plain_restaurants_expands_once():
    def results(radius_m):
        count = 2 if radius_m < 1000 else 6
        return [_candidate(f"p{i}", types=["restaurant"]) for i in range(count)]

    search = _StubSearch(results)
    orch = DiscoveryOrchestrator(_settings(), search)

    result = await orch.discover(FILTERS)

    assert search.calls == [625, 1250]
    assert result.loading_state is LoadingState.COMPLETE
    assert result.expansion.expansion_count == 1
    assert result.expansion.relaxed_filters == []
    assert [e.state for e in result.expansion.events] == [
        LoadingState.SEARCHING,
        LoadingState.EXPANDING,
        LoadingState.SEARCHING,
        LoadingState.COMPLETE,
    ]
    # Neutral places are admitted but rank on a zero mood alignment.
    assert all(p.mood_score == 50 for p in result.places)
    assert all(p.mood_alignment_score == 0.0 for p in result.places)


@pytest.mark.asyncio
async def test_upstream_calls_stay_within_expansion_budget():
    search = _StubSearch(lambda _radius: [])
    orch = DiscoveryOrchestrator(_settings(), search)
    filters = {
        "category": "food",
        "mood": 50,
        "socialContext": "paired",
        "timeOfDay": "night",
        "budget": "high",
        "distanceRange": 20,
        "origin": ORIGIN,
    }

    result = await orch.discover(filters)
    again = await orch.get_next_batch(filters)

    max_expansions = _settings().discovery.max_expansions
    assert len(search.calls) <= 1 + max_expansions
    assert search.calls == [625, 1250, 2500, 5000]
    assert result.loading_state is LoadingState.LIMIT_REACHED
    assert result.expansion.expansion_count == max_expansions
    assert again.loading_state is LoadingState.LIMIT_REACHED
    assert len(search.calls) == 1 + max_expansions


@pytest.mark.asyncio
async def test_category_is_never_reported_as_relaxed():
    search = _StubSearch(lambda _radius: [])
    orch = DiscoveryOrchestrator(_settings(), search)

    result = await orch.discover(
        {**FILTERS, "mood": 50, "socialContext": "paired", "timeOfDay": "night", "budget": "high"}
    )

    assert result.expansion.relaxed_filters == ["time_of_day", "social_context", "mood", "budget"]
    assert "category" not in result.expansion.relaxed_filters
    for event in result.expansion.events:
        assert "category" not in event.relaxed_filters


@pytest.mark.asyncio
async def test_relaxation_refilters_the_pool_without_searching_again():
    def results(radius_m):
        # Chill places only: hidden from a hype request until mood is relaxed.
        return [_candidate(f"c{i}", types=["spa", "cafe"], price_tier=3) for i in range(5)]

    search = _StubSearch(results)
    orch = DiscoveryOrchestrator(_settings(), search)

    result = await orch.discover({**FILTERS, "mood": 75})

    assert search.calls == [625, 1250]
    assert result.loading_state is LoadingState.COMPLETE
    assert result.expansion.relaxed_filters == ["mood"]
    assert result.expansion.expansion_count == 1
    assert len(result.places) == 4
