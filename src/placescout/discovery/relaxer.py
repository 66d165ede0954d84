"""
Progressive filter relaxer.

`ActiveFilters` is the constraint set in force for one search step: which place types
and price tiers to ask the upstream for, and which scored places are admitted into the
pool. Relaxing returns a new `ActiveFilters` with exactly one more dimension loosened:

- time_of_day: its type/open-now constraint is dropped
- social_context: its type constraint is dropped
- mood: the alignment window widens (mood is kept)
- budget: the price band widens by one tier on each side

The order is the ascending strictness order from settings. Category is never relaxed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from placescout.domain.models import FilterSet, RelaxableDimension, ScoredPlace
from placescout.preferences import Resolvers


@dataclass(frozen=True)
class ActiveFilters:
    filters: FilterSet
    resolvers: Resolvers
    relaxed: tuple[RelaxableDimension, ...] = field(default_factory=tuple)

    def is_relaxed(self, dimension: RelaxableDimension) -> bool:
        return dimension in self.relaxed

    def _social_active(self) -> bool:
        return self.filters.social_context is not None and not self.is_relaxed("social_context")

    def _time_active(self) -> bool:
        return self.resolvers.time_of_day.is_set(self.filters.time_of_day) and not self.is_relaxed(
            "time_of_day"
        )

    def place_types(self) -> frozenset[str]:
        """Types sent upstream: the category's types, narrowed by social context when useful."""
        types = self.resolvers.category.preferred_place_types(self.filters.category)
        if self._social_active():
            narrowed = types & self.resolvers.social_context.preferred_place_types(self.filters.social_context)
            if narrowed:
                types = narrowed
        return types

    def price_tiers(self) -> frozenset[int] | None:
        if self.filters.budget is None:
            return None
        return self.resolvers.budget.band(self.filters.budget, relaxed=self.is_relaxed("budget"))

    def open_now(self) -> bool | None:
        if self._time_active() and self.resolvers.time_of_day.wants_open_now(self.filters.time_of_day):
            return True
        return None

    def admits(self, place: ScoredPlace) -> bool:
        f = self.filters
        r = self.resolvers
        if not r.category.matches(f.category, place.types):
            return False
        if self._social_active() and not r.social_context.matches(f.social_context, place.types):
            return False
        if self._time_active() and not r.time_of_day.matches(f.time_of_day, place.types, place.open_now):
            return False
        if f.budget is not None and not r.budget.matches(
            f.budget, place.price_tier, relaxed=self.is_relaxed("budget")
        ):
            return False
        return r.mood.within(place.mood_score, f.mood, relaxed=self.is_relaxed("mood"))

    def cache_key(self, radius_m: float) -> str:
        return f"{self.filters.signature}:{round(radius_m)}:{','.join(self.relaxed) or '-'}"


class ProgressiveRelaxer:
    def __init__(self, resolvers: Resolvers):
        self._resolvers = resolvers

    def order(self, filters: FilterSet) -> list[RelaxableDimension]:
        return self._resolvers.relaxable(filters)

    def next_dimension(self, active: ActiveFilters) -> RelaxableDimension | None:
        for dimension in self.order(active.filters):
            if dimension not in active.relaxed:
                return dimension
        return None

    def can_relax(self, active: ActiveFilters) -> bool:
        return self.next_dimension(active) is not None

    def relax(self, active: ActiveFilters) -> tuple[ActiveFilters, RelaxableDimension] | None:
        """Loosen exactly one more dimension, or return None when nothing is left."""
        dimension = self.next_dimension(active)
        if dimension is None:
            return None
        return ActiveFilters(active.filters, active.resolvers, (*active.relaxed, dimension)), dimension
