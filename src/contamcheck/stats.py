from __future__ import annotations

import math
from typing import Dict, Optional, Tuple

from .models import ContaminationEstimate, Klass
from .utils import clamp

Z_95 = 1.96  # Z_{0.975}, two-sided 95%


def wilson_interval(k: int, n: int, z: float = Z_95) -> Optional[Tuple[float, float, float]]:
    """Wilson score interval for a proportion ``k / n``.

    Returns ``(lower, p, upper)`` as fractions, or ``None`` when ``n == 0``.
    """
    if n <= 0:
        return None
    p = k / n
    center = p + 0.5 * z * z / n
    half = z * math.sqrt(p * (1.0 - p) / n + 0.25 * z * z / (n * n))
    denom = 1.0 + z * z / n
    lower = clamp((center - half) / denom, 0.0, p)
    upper = clamp((center + half) / denom, p, 1.0)
    return lower, p, upper


class SummaryStatistics:
    """Running per-class counts of finished fragments."""

    def __init__(self) -> None:
        self.counts: Dict[Klass, int] = {k: 0 for k in Klass}

    def add(self, klass: Klass, n: int = 1) -> None:
        self.counts[klass] += n

    def __getitem__(self, klass: Klass) -> int:
        return self.counts[klass]

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def estimate(self) -> Optional[ContaminationEstimate]:
        """Contamination rate among fragments that voted clean or dirt."""
        k = self.counts[Klass.DIRT]
        n = k + self.counts[Klass.CLEAN]
        ci = wilson_interval(k, n)
        if ci is None:
            return None
        lower, p, upper = ci
        return ContaminationEstimate(
            lower=100.0 * lower,
            estimate=100.0 * p,
            upper=100.0 * upper,
            dirt=k,
            n=n,
        )

    def as_dict(self) -> Dict[str, int]:
        return {k.label: v for k, v in self.counts.items()}
