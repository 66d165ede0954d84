"""
Shared scoring utilities.

Small, reusable helpers used by the scoring engine:
- `clamp01`: keep values within 0..1 for stable output
- `log_scaled`: log-scale a count against a reference maximum (review counts)
"""

from __future__ import annotations

import math


def clamp01(x: float) -> float:
    """Clamp a number into the [0.0, 1.0] range."""
    return max(0.0, min(1.0, float(x)))


def log_scaled(count: float, reference: float) -> float:
    """`log1p(count) / log1p(reference)`, clamped to 0..1."""
    if count <= 0 or reference <= 0:
        return 0.0
    return clamp01(math.log1p(float(count)) / math.log1p(float(reference)))
