"""
Discovery orchestrator.

Public entry points:
- `discover(filters)`: first batch for a filter set (searching if the pool is short)
- `get_next_batch(filters)`: next batch from the same pool; searches again only when the
  pool cannot fill a batch, resuming from the pool's radius/expansion/relaxation state
- `reset(filters)`: drop the pool so the next `discover()` starts from INITIAL

Concurrency (asyncio):
- identical concurrent calls (same signature + operation) share one task
- every refill of a pool goes through one supply task per signature, so a `discover()`
  and a `get_next_batch()` racing on the same pool never search twice
- pool mutation happens under `pool.lock`
- callers await `asyncio.shield(task)`: a cancelled caller stops waiting, the shared work
  still completes and fills the pool

Upstream failures end the call in ERROR with no places taken from the pool; the pool keeps
its candidates and its last successful radius/expansion state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, TypeVar

from placescout.config.settings import Settings
from placescout.core.errors import UpstreamError
from placescout.discovery.normalizer import normalize
from placescout.discovery.radius import RadiusController, Step
from placescout.discovery.relaxer import ActiveFilters, ProgressiveRelaxer
from placescout.domain.models import (
    AdvertisedPlace,
    DiscoveryResult,
    ExpansionInfo,
    FilterSet,
    FilterWarning,
    LoadingState,
    PlaceCandidate,
    PoolInfo,
    ScoredPlace,
    SearchEvent,
)
from placescout.ingestion.capabilities import AdvertisedSource, MoodAnalyzer, PlaceSearch, ResultCache
from placescout.ingestion.upstream import call_upstream
from placescout.pool.manager import Pool, ResultPoolManager
from placescout.preferences import Resolvers, build_resolvers
from placescout.preferences.mood import clamp_mood
from placescout.scoring.engine import score, score_advertised

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CycleOutcome:
    state: LoadingState
    events: list[SearchEvent] = field(default_factory=list)
    error: str | None = None


class DiscoveryOrchestrator:
    def __init__(
        self,
        settings: Settings,
        place_search: PlaceSearch,
        *,
        mood_analyzer: MoodAnalyzer | None = None,
        advertised: AdvertisedSource | None = None,
        cache: ResultCache | None = None,
        pools: ResultPoolManager | None = None,
        resolvers: Resolvers | None = None,
    ):
        self._settings = settings
        self._cfg = settings.discovery
        self._search = place_search
        self._mood = mood_analyzer
        self._ads = advertised
        self._cache = cache
        self._pools = pools or ResultPoolManager(ttl_seconds=self._cfg.pool_ttl_seconds)
        self._resolvers = resolvers or build_resolvers(settings)
        self._relaxer = ProgressiveRelaxer(self._resolvers)
        self._inflight: dict[tuple[str, str], asyncio.Task] = {}
        self._supply: dict[str, asyncio.Task] = {}

    @property
    def pools(self) -> ResultPoolManager:
        return self._pools

    @property
    def resolvers(self) -> Resolvers:
        return self._resolvers

    # -- public API -------------------------------------------------------------------

    async def discover(self, raw_filters: Mapping[str, Any] | FilterSet) -> DiscoveryResult:
        """Normalize, search (expanding/relaxing as needed) and return the first batch.

        Raises:
            InvalidOrigin: before any work is scheduled.
        """
        filters, warnings = normalize(raw_filters, resolvers=self._resolvers)
        return await self._single_flight(
            filters.signature,
            "discover",
            lambda: self._serve(filters, warnings, threshold=self._cfg.min_results),
        )

    async def get_next_batch(self, raw_filters: Mapping[str, Any] | FilterSet) -> DiscoveryResult:
        filters, warnings = normalize(raw_filters, resolvers=self._resolvers)
        return await self._single_flight(
            filters.signature,
            "next",
            lambda: self._serve(filters, warnings, threshold=self._cfg.batch_size),
        )

    def reset(self, raw_filters: Mapping[str, Any] | FilterSet) -> bool:
        """Discard the pool for these filters; returns whether a pool existed."""
        filters, _ = normalize(raw_filters, resolvers=self._resolvers)
        dropped = self._pools.discard(filters.signature)
        logger.info("Reset pool signature=%s existed=%s", filters.signature[:12], dropped)
        return dropped

    # -- single flight ----------------------------------------------------------------

    async def _single_flight(self, signature: str, op: str, factory: Callable[[], Awaitable[T]]) -> T:
        key = (signature, op)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._forget(self._inflight, key, t))
        else:
            logger.debug("Joining in-flight %s for signature=%s", op, signature[:12])
        return await asyncio.shield(task)

    @staticmethod
    def _forget(registry: dict, key: Any, task: asyncio.Task) -> None:
        if registry.get(key) is task:
            del registry[key]
        # Mark the exception as retrieved; callers that are still waiting re-raise it.
        if not task.cancelled():
            task.exception()

    # -- serving ----------------------------------------------------------------------

    def _initial_radius(self, filters: FilterSet) -> float:
        _, outer_m = self._resolvers.distance.meters_range(filters.distance_range)
        return min(outer_m, float(self._cfg.max_radius_m))

    async def _serve(
        self, filters: FilterSet, warnings: list[FilterWarning], *, threshold: int
    ) -> DiscoveryResult:
        pool = self._pools.get_or_create_pool(filters.signature, initial_radius_m=self._initial_radius(filters))

        places: list[ScoredPlace] = []
        needs_refresh = pool.needs_refresh
        while True:
            outcome: CycleOutcome | None = None
            async with pool.lock:
                # Check and take under one lock hold so racing callers cannot both pass it.
                if pool.available_count >= threshold:
                    controller = self._controller(pool)
                    controller.satisfied(pool.available_count)
                    outcome = CycleOutcome(LoadingState.COMPLETE, controller.events)
                    places, needs_refresh = await self._take(filters, pool)
            if outcome is not None:
                break

            outcome = await self._supply_task(filters, pool)
            if outcome.state is LoadingState.ERROR:
                break
            async with pool.lock:
                if outcome.state is LoadingState.COMPLETE and pool.available_count < self._cfg.min_results:
                    # A concurrent caller drained the refill; go around again.
                    continue
                places, needs_refresh = await self._take(filters, pool)
            break

        return DiscoveryResult(
            signature=filters.signature,
            places=places,
            loading_state=outcome.state,
            expansion=ExpansionInfo(
                radius_m=round(pool.radius_m, 1),
                expansion_count=pool.expansion_count,
                filters_relaxed=bool(pool.relaxed),
                relaxed_filters=list(pool.relaxed),
                events=outcome.events,
            ),
            pool=PoolInfo(
                remaining=pool.available_count,
                returned=len(pool.returned),
                total_seen=len(pool.seen),
                needs_refresh=needs_refresh,
            ),
            warnings=warnings,
            error=outcome.error,
        )

    async def _take(self, filters: FilterSet, pool: Pool) -> tuple[list[ScoredPlace], bool]:
        """Take the next batch plus at most one ad. Caller holds `pool.lock`."""
        ads = await self._advertised_for(filters, pool)
        batch, needs_refresh = self._pools.take_batch(pool, self._cfg.batch_size)
        return self._pools.insert_advertised(pool, batch, ads, slot=self._cfg.advertised_slot), needs_refresh

    async def _supply_task(self, filters: FilterSet, pool: Pool) -> CycleOutcome:
        task = self._supply.get(filters.signature)
        if task is None:
            task = asyncio.ensure_future(self._run_cycle(filters, pool))
            self._supply[filters.signature] = task
            task.add_done_callback(lambda t: self._forget(self._supply, filters.signature, t))
        return await asyncio.shield(task)

    # -- the search cycle -------------------------------------------------------------

    def _controller(self, pool: Pool) -> RadiusController:
        return RadiusController(
            self._cfg,
            radius_m=pool.radius_m,
            expansion_count=pool.expansion_count,
            last_adjustment=pool.last_adjustment,
            relaxed_filters=pool.relaxed,
        )

    async def _run_cycle(self, filters: FilterSet, pool: Pool) -> CycleOutcome:
        controller = self._controller(pool)
        active = ActiveFilters(filters, self._resolvers, tuple(pool.relaxed))

        # A pool that was searched before resumes with an adjustment, not a repeat search.
        # Only expansions (and the first search) go upstream; a relaxation re-filters what
        # the pool has already seen, and its wider request rides on the next expansion.
        search_now = not pool.searched
        while True:
            if search_now:
                controller.start_search(pool.available_count)
                try:
                    candidates = await self._search_step(filters, active, controller.radius_m)
                except UpstreamError as exc:
                    logger.warning(
                        "Discovery failed for signature=%s at radius_m=%.0f: %s",
                        filters.signature[:12],
                        controller.radius_m,
                        exc,
                    )
                    controller.fail(pool.available_count, str(exc))
                    return CycleOutcome(LoadingState.ERROR, controller.events, error=str(exc))

                scored = await self._score_new(filters, pool, candidates)
                async with pool.lock:
                    self._pools.record(pool, scored)
                    self._pools.admit(pool, [p for p in pool.seen.values() if active.admits(p)])
                    pool.radius_m = controller.radius_m
                    pool.expansion_count = controller.expansion_count
                    pool.relaxed = list(active.relaxed)
                    pool.last_adjustment = controller.last_adjustment
                    pool.searched = True

            step = controller.observe(pool.available_count, can_relax=self._relaxer.can_relax(active))
            if step is Step.COMPLETE:
                return CycleOutcome(LoadingState.COMPLETE, controller.events)
            if step is Step.LIMIT:
                return CycleOutcome(LoadingState.LIMIT_REACHED, controller.events)
            if step is Step.EXPAND:
                search_now = True
                continue

            relaxed = self._relaxer.relax(active)
            if relaxed is None:
                raise RuntimeError("relaxation requested with nothing left to relax (unexpected).")
            active, dimension = relaxed
            async with pool.lock:
                self._pools.admit(pool, [p for p in pool.seen.values() if active.admits(p)])
                pool.relaxed = list(active.relaxed)
                pool.last_adjustment = "relax"
            controller.record_relaxation(dimension, pool.available_count)
            search_now = False

    async def _search_step(self, filters: FilterSet, active: ActiveFilters, radius_m: float) -> list[PlaceCandidate]:
        key = active.cache_key(radius_m)
        cached = await self._cache_get(key)
        if cached is not None:
            logger.debug("Place search cache hit key=%s", key[:24])
            return cached

        place_types = active.place_types()
        price_tiers = active.price_tiers()
        open_now = active.open_now()
        candidates = await call_upstream(
            lambda: self._search.search(
                filters.origin, radius_m, place_types, price_tiers=price_tiers, open_now=open_now
            ),
            retry=self._cfg.retry,
            timeout_seconds=self._cfg.upstream_timeout_seconds,
            label="place search",
        )
        await self._cache_put(key, candidates)
        return candidates

    async def _cache_get(self, key: str) -> list[PlaceCandidate] | None:
        if self._cache is None:
            return None
        try:
            return await asyncio.to_thread(self._cache.get, key)
        except Exception as exc:
            logger.warning("Result cache read failed (%s); searching upstream", exc)
            return None

    async def _cache_put(self, key: str, candidates: list[PlaceCandidate]) -> None:
        if self._cache is None:
            return
        try:
            await asyncio.to_thread(self._cache.put, key, candidates)
        except Exception as exc:
            logger.warning("Result cache write failed (%s)", exc)

    # -- scoring ----------------------------------------------------------------------

    async def _candidate_mood(self, candidate: PlaceCandidate) -> float:
        if self._mood is not None and candidate.review_snippets:
            analyzer = self._mood
            try:
                value = await call_upstream(
                    lambda: analyzer.analyze_mood(list(candidate.review_snippets)),
                    retry=self._cfg.retry,
                    timeout_seconds=self._cfg.upstream_timeout_seconds,
                    label="mood analysis",
                )
                return clamp_mood(value)
            except UpstreamError as exc:
                logger.warning(
                    "Mood analysis failed for place_id=%s (%s); inferring from place types", candidate.id, exc
                )
        return self._resolvers.mood.infer_from_types(candidate.types)

    async def _score_new(self, filters: FilterSet, pool: Pool, candidates: list[PlaceCandidate]) -> list[ScoredPlace]:
        """Score candidates the pool has not seen yet (first occurrence of an id wins)."""
        fresh: dict[str, PlaceCandidate] = {}
        for c in candidates:
            if c.id not in pool.seen and c.id not in fresh:
                fresh[c.id] = c
        if not fresh:
            return []

        moods = await asyncio.gather(*(self._candidate_mood(c) for c in fresh.values()))
        return [
            score(c, filters, candidate_mood=m, resolvers=self._resolvers, cfg=self._settings.scoring)
            for c, m in zip(fresh.values(), moods)
        ]

    async def _advertised_for(self, filters: FilterSet, pool: Pool) -> list[AdvertisedPlace]:
        if self._ads is None:
            return []
        records = self._ads.eligible(filters.category, filters.origin, pool.radius_m)
        records = [r for r in records if r.place.id not in pool.advertised_shown]
        if not records:
            return []
        moods = [self._resolvers.mood.infer_from_types(r.place.types) for r in records]
        return [
            score_advertised(r, filters, candidate_mood=m, resolvers=self._resolvers, cfg=self._settings.scoring)
            for r, m in zip(records, moods)
        ]
