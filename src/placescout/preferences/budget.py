"""
Budget resolver.

Budgets map onto upstream price tiers (0..4). When budget is relaxed the band grows by
`relaxed_widen_by` tiers on each side rather than being dropped.
"""

from __future__ import annotations

from placescout.config.settings import BudgetPreferenceSettings
from placescout.domain.models import Budget
from placescout.preferences.base import PreferenceResolver

MIN_TIER = 0
MAX_TIER = 4


class BudgetResolver(PreferenceResolver[Budget]):
    dimension = "budget"

    compatibility = {
        "low": {"social_context": frozenset({"solo", "group"})},
    }

    def __init__(self, cfg: BudgetPreferenceSettings, *, strictness: float, rank: int | None):
        super().__init__(strictness=strictness, rank=rank)
        self._cfg = cfg

    def preferred_place_types(self, value: Budget) -> frozenset[str]:
        # Budget narrows by price, not by place type.
        return frozenset()

    def band(self, value: Budget, *, relaxed: bool = False) -> frozenset[int]:
        tiers = set(self._cfg.tiers[value])
        if relaxed and tiers:
            widen = int(self._cfg.relaxed_widen_by)
            low = max(MIN_TIER, min(tiers) - widen)
            high = min(MAX_TIER, max(tiers) + widen)
            tiers = set(range(low, high + 1))
        return frozenset(tiers)

    def matches(self, value: Budget, price_tier: int | None, *, relaxed: bool = False) -> bool:
        """Places without a price tier are not excluded (they just earn no budget bonus)."""
        if price_tier is None:
            return True
        return price_tier in self.band(value, relaxed=relaxed)
