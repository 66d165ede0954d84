"""
Preference resolvers.

`build_resolvers(settings)` wires one resolver per dimension with the configured strictness
weights. The bundle also answers two cross-dimension questions used by the normalizer and
the relaxer: which pairs of values clash, and which active dimensions can be loosened (and
in which order).
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations

from placescout.config.settings import Settings
from placescout.domain.models import FilterSet, RelaxableDimension
from placescout.preferences.base import PreferenceResolver, relaxation_ranks
from placescout.preferences.budget import BudgetResolver
from placescout.preferences.category import CategoryResolver
from placescout.preferences.distance import DistanceResolver
from placescout.preferences.mood import MoodResolver
from placescout.preferences.social import SocialContextResolver
from placescout.preferences.time_of_day import TimeOfDayResolver


@dataclass(frozen=True)
class Resolvers:
    category: CategoryResolver
    mood: MoodResolver
    social_context: SocialContextResolver
    budget: BudgetResolver
    time_of_day: TimeOfDayResolver
    distance: DistanceResolver

    def soft(self) -> dict[str, PreferenceResolver]:
        return {
            "mood": self.mood,
            "social_context": self.social_context,
            "budget": self.budget,
            "time_of_day": self.time_of_day,
        }

    def relaxable(self, filters: FilterSet) -> list[RelaxableDimension]:
        """Active, relaxable dimensions in relaxation order (least strict first)."""
        ranked: list[tuple[int, str]] = []
        for name, resolver in self.soft().items():
            value = getattr(filters, name)
            rank = resolver.relaxation_rank(value)
            if rank is None or resolver.weight(value) <= 0:
                continue
            ranked.append((rank, name))
        return [name for _, name in sorted(ranked)]  # type: ignore[misc]

    def conflicts(self, filters: FilterSet) -> list[tuple[str, str]]:
        """Pairs of set dimensions whose values don't go well together."""
        out: list[tuple[str, str]] = []
        soft = self.soft()
        for a, b in combinations(sorted(soft), 2):
            va, vb = getattr(filters, a), getattr(filters, b)
            if not soft[a].is_compatible(va, b, vb) or not soft[b].is_compatible(vb, a, va):
                out.append((a, b))
        return out


def build_resolvers(settings: Settings) -> Resolvers:
    prefs = settings.preferences
    strict = prefs.strictness.model_dump()
    ranks = relaxation_ranks(strict)

    mood = MoodResolver(prefs.mood, strictness=strict["mood"], rank=ranks["mood"])
    return Resolvers(
        category=CategoryResolver(),
        mood=mood,
        social_context=SocialContextResolver(
            mood, strictness=strict["social_context"], rank=ranks["social_context"]
        ),
        budget=BudgetResolver(prefs.budget, strictness=strict["budget"], rank=ranks["budget"]),
        time_of_day=TimeOfDayResolver(
            mood, strictness=strict["time_of_day"], rank=ranks["time_of_day"]
        ),
        distance=DistanceResolver(prefs.distance),
    )


__all__ = ["Resolvers", "build_resolvers"]
