"""
Distance resolver: `distance_range` (0..100) -> meters.

The mapping is piecewise-linear between configured anchors, so small percentages stay in
a narrow near-field band (150 m .. 1 km) while large ones open up quickly (5 .. 20 km).
Anchors are validated as non-decreasing in settings, which keeps the mapping monotonic.
"""

from __future__ import annotations

from bisect import bisect_right

from placescout.config.settings import DistancePreferenceSettings


def _clamp_pct(pct: float) -> float:
    return max(0.0, min(100.0, float(pct)))


class DistanceResolver:
    def __init__(self, cfg: DistancePreferenceSettings):
        self._pcts = [float(p) for p, _ in cfg.anchors]
        self._meters = [float(m) for _, m in cfg.anchors]

    def base_meters(self, pct: float) -> float:
        pct = _clamp_pct(pct)
        idx = bisect_right(self._pcts, pct)
        if idx <= 0:
            return self._meters[0]
        if idx >= len(self._pcts):
            return self._meters[-1]
        p0, p1 = self._pcts[idx - 1], self._pcts[idx]
        m0, m1 = self._meters[idx - 1], self._meters[idx]
        return m0 + (m1 - m0) * (pct - p0) / (p1 - p0)

    def meters_range(self, pct: float) -> tuple[float, float]:
        """(min_m, max_m) band for a percentage; max is the base search radius."""
        pct = _clamp_pct(pct)
        idx = bisect_right(self._pcts, pct) - 1
        if pct <= self._pcts[0]:
            return 0.0, self._meters[0]
        lower_pct = self._pcts[idx] if self._pcts[idx] < pct else self._pcts[max(0, idx - 1)]
        return self.base_meters(lower_pct), self.base_meters(pct)
