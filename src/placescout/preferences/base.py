"""
Shared resolver contract.

Every soft dimension (category, mood, social context, budget, time of day) gets one
resolver that answers four questions:
- which place types does this value prefer?
- does this value make sense next to a value of another dimension?
- how strictly should it constrain results (`weight`, 0..1)?
- when results are scarce, in which position is it loosened (`relaxation_rank`)?

Strictness comes from `preferences.strictness` in settings; the relaxation order is the
ascending order of those weights, so reordering is a YAML change.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, Mapping, TypeVar

from placescout.domain.models import Dimension

V = TypeVar("V")


def relaxation_ranks(strictness: Mapping[str, float]) -> dict[str, int]:
    """Rank relaxable dimensions least-strict first (ties broken by name for stability)."""
    ordered = sorted(strictness.items(), key=lambda kv: (float(kv[1]), kv[0]))
    return {name: rank for rank, (name, _) in enumerate(ordered)}


class PreferenceResolver(ABC, Generic[V]):
    dimension: ClassVar[Dimension]

    # value -> {other dimension -> values it is compatible with}; absent means "anything".
    compatibility: ClassVar[Mapping[str, Mapping[str, frozenset[str]]]] = {}

    def __init__(self, *, strictness: float = 1.0, rank: int | None = None):
        self._strictness = float(strictness)
        self._rank = rank

    @abstractmethod
    def preferred_place_types(self, value: V) -> frozenset[str]:
        raise NotImplementedError

    def is_set(self, value: V | None) -> bool:
        return value is not None

    def compat_key(self, value: V) -> str:
        """Key used for compatibility lookups (mood maps its score onto a band)."""
        return str(value)

    def is_compatible(self, value: V | None, other_dimension: Dimension, other_value: Any) -> bool:
        """Whether `value` fits next to `other_value` of `other_dimension`.

        Unset values are compatible with everything.
        """
        if not self.is_set(value) or other_value is None:
            return True
        allowed = self.compatibility.get(self.compat_key(value), {}).get(other_dimension)
        if allowed is None:
            return True
        return str(other_value) in allowed

    def weight(self, value: V | None) -> float:
        return self._strictness if self.is_set(value) else 0.0

    def relaxation_rank(self, value: V | None) -> int | None:
        if not self.is_set(value):
            return None
        return self._rank
