"""
Search radius controller.

State machine: INITIAL -> SEARCHING -> EXPANDING -> {COMPLETE | LIMIT_REACHED | ERROR}

After every search the orchestrator reports the yield (filtered, deduplicated places
available in the pool) and the controller picks exactly one next step:
- yield >= min_results                                   -> COMPLETE
- a filter can be relaxed and the previous step was an
  expansion (or expansions are used up)                  -> relax one filter, re-filter the pool
- expansions remain                                      -> expand (radius * growth, capped)
- otherwise                                              -> LIMIT_REACHED

So expansion and relaxation alternate (expand first). Only the first search and each
expansion go upstream, so a pool costs at most `1 + max_expansions` place searches.
ERROR is only entered on upstream failure.

The controller can be resumed from a pool's saved radius/expansion state, and it keeps a
structured event log that is returned to callers.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Literal

from placescout.config.settings import DiscoverySettings
from placescout.domain.models import LoadingState, RelaxableDimension, SearchEvent

logger = logging.getLogger(__name__)

Adjustment = Literal["expand", "relax"]


class Step(str, Enum):
    COMPLETE = "complete"
    RELAX = "relax"
    EXPAND = "expand"
    LIMIT = "limit"


class RadiusController:
    def __init__(
        self,
        cfg: DiscoverySettings,
        *,
        radius_m: float,
        expansion_count: int = 0,
        last_adjustment: Adjustment | None = None,
        relaxed_filters: list[RelaxableDimension] | None = None,
    ):
        self._cfg = cfg
        self.radius_m = min(float(radius_m), float(cfg.max_radius_m))
        self.expansion_count = int(expansion_count)
        self.last_adjustment: Adjustment | None = last_adjustment
        self.relaxed_filters: list[RelaxableDimension] = list(relaxed_filters or [])
        self.state = LoadingState.INITIAL
        self.events: list[SearchEvent] = []

    @property
    def min_results(self) -> int:
        return int(self._cfg.min_results)

    @property
    def expansions_left(self) -> int:
        return max(0, int(self._cfg.max_expansions) - self.expansion_count)

    def _transition(self, state: LoadingState, yield_count: int, note: str | None = None) -> None:
        self.state = state
        event = SearchEvent(
            state=state,
            radius_m=round(self.radius_m, 1),
            expansion_count=self.expansion_count,
            yield_count=yield_count,
            relaxed_filters=list(self.relaxed_filters),
            note=note,
        )
        self.events.append(event)
        logger.info(
            "discovery state=%s radius_m=%.0f expansion_count=%s yield=%s relaxed=%s%s",
            state.value,
            self.radius_m,
            self.expansion_count,
            yield_count,
            ",".join(self.relaxed_filters) or "-",
            f" ({note})" if note else "",
        )

    def start_search(self, yield_count: int) -> None:
        self._transition(LoadingState.SEARCHING, yield_count)

    def observe(self, yield_count: int, *, can_relax: bool) -> Step:
        """Decide the next step after a search produced `yield_count` usable places."""
        if yield_count >= self.min_results:
            self._transition(LoadingState.COMPLETE, yield_count)
            return Step.COMPLETE

        if can_relax and (self.last_adjustment == "expand" or self.expansions_left == 0):
            return Step.RELAX

        if self.expansions_left > 0:
            self._expand(yield_count)
            return Step.EXPAND

        self._transition(LoadingState.LIMIT_REACHED, yield_count)
        return Step.LIMIT

    def _expand(self, yield_count: int) -> None:
        self.radius_m = min(self.radius_m * float(self._cfg.growth_factor), float(self._cfg.max_radius_m))
        self.expansion_count += 1
        self.last_adjustment = "expand"
        self._transition(LoadingState.EXPANDING, yield_count)

    def record_relaxation(self, dimension: RelaxableDimension, yield_count: int) -> None:
        self.relaxed_filters.append(dimension)
        self.last_adjustment = "relax"
        self._transition(LoadingState.SEARCHING, yield_count, note=f"relaxed {dimension}")

    def fail(self, yield_count: int, message: str) -> None:
        self._transition(LoadingState.ERROR, yield_count, note=message)

    def satisfied(self, yield_count: int) -> None:
        """Terminal COMPLETE without a search (pool already had enough)."""
        self._transition(LoadingState.COMPLETE, yield_count, note="served from pool")
