"""
Result pool manager.

One `Pool` per query signature, owned by one `ResultPoolManager` instance that the
orchestrator receives explicitly (no module-level state).

Pools are arenas: `seen` holds every scored place by id (first sighting wins and keeps
its discovery index), while `available` and `returned` only hold ids. Dedup is plain set
membership on ids, so a place produced by several upstream calls is still served once.

Eviction is passive: expired pools are dropped whenever the manager is accessed.
Mutation of a single pool happens under `pool.lock`; the manager itself does not lock.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Literal

from placescout.domain.models import AdvertisedPlace, RelaxableDimension, ScoredPlace
from placescout.scoring.engine import ranking_key

logger = logging.getLogger(__name__)


@dataclass
class Pool:
    signature: str
    radius_m: float
    created_at: float
    last_access: float
    expansion_count: int = 0
    relaxed: list[RelaxableDimension] = field(default_factory=list)
    last_adjustment: Literal["expand", "relax"] | None = None
    seen: dict[str, ScoredPlace] = field(default_factory=dict)
    order: dict[str, int] = field(default_factory=dict)
    available: list[str] = field(default_factory=list)
    returned: set[str] = field(default_factory=set)
    advertised_shown: set[str] = field(default_factory=set)
    needs_refresh: bool = False
    searched: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def available_count(self) -> int:
        return len(self.available)


class ResultPoolManager:
    def __init__(self, *, ttl_seconds: float = 30 * 60, clock: Callable[[], float] = time.monotonic):
        self._ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._pools: dict[str, Pool] = {}

    def __len__(self) -> int:
        return len(self._pools)

    def evict_expired(self) -> int:
        now = self._clock()
        expired = [sig for sig, p in self._pools.items() if now - p.last_access > self._ttl_seconds]
        for sig in expired:
            del self._pools[sig]
        if expired:
            logger.info("Evicted %s idle pool(s)", len(expired))
        return len(expired)

    def get_pool(self, signature: str) -> Pool | None:
        self.evict_expired()
        pool = self._pools.get(signature)
        if pool is not None:
            pool.last_access = self._clock()
        return pool

    def get_or_create_pool(self, signature: str, *, initial_radius_m: float) -> Pool:
        """Idempotent: returns the live pool for `signature` or creates an empty one."""
        pool = self.get_pool(signature)
        if pool is None:
            now = self._clock()
            pool = Pool(signature=signature, radius_m=float(initial_radius_m), created_at=now, last_access=now)
            self._pools[signature] = pool
        return pool

    def discard(self, signature: str) -> bool:
        return self._pools.pop(signature, None) is not None

    def record(self, pool: Pool, places: Iterable[ScoredPlace]) -> int:
        """Register scored places in the pool arena; returns how many ids were new."""
        added = 0
        for place in places:
            if place.id in pool.seen:
                continue
            pool.order[place.id] = len(pool.order)
            pool.seen[place.id] = place
            added += 1
        return added

    def admit(self, pool: Pool, places: Iterable[ScoredPlace]) -> int:
        """Merge places into `available`, skipping ids already available or returned."""
        available = set(pool.available)
        added = 0
        for place in places:
            if place.id in available or place.id in pool.returned:
                continue
            if place.id not in pool.seen:
                self.record(pool, [place])
            pool.available.append(place.id)
            available.add(place.id)
            added += 1
        if added:
            pool.available.sort(key=lambda pid: ranking_key(pool.seen[pid], pool.order[pid]))
        return added

    def take_batch(self, pool: Pool, size: int) -> tuple[list[ScoredPlace], bool]:
        """Move up to `size` best places from available to returned.

        `needs_refresh` is True when the pool could not fill a whole batch, i.e. the next
        request has to search again before it can be served.
        """
        ids = pool.available[:size]
        del pool.available[: len(ids)]
        pool.returned.update(ids)
        pool.needs_refresh = len(ids) < size
        pool.last_access = self._clock()
        return [pool.seen[pid] for pid in ids], pool.needs_refresh

    def insert_advertised(
        self,
        pool: Pool,
        batch: list[ScoredPlace],
        candidates: Iterable[AdvertisedPlace],
        *,
        slot: int,
    ) -> list[ScoredPlace]:
        """Insert at most one advertised place at `slot` (organic places keep their order).

        Ads are only placed next to organic results, never repeat within a pool, and never
        share an id with a place the pool has seen.
        """
        if not batch:
            return batch
        in_batch = {p.id for p in batch}
        for ad in candidates:
            if ad.id in pool.seen or ad.id in pool.returned or ad.id in in_batch:
                continue
            if ad.id in pool.advertised_shown:
                continue
            pool.advertised_shown.add(ad.id)
            pool.returned.add(ad.id)
            out = list(batch)
            out.insert(min(slot, len(out)), ad)
            return out
        return batch
