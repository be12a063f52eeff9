"""Leverage from LTV and its inverse for a fixed loop count.

Model, with ``l = LTV% / 100``::

    S = 1 + l + l**2 + ... + l**N      (supply multiple)
    B = S - 1                          (borrow multiple)
"""
from __future__ import annotations

import math

from ..models import LoopTotals
from .fixed_point import EPS, clamp, geometric_series_sum, to_finite

# Returned when the target sits on the asymptote; callers cap further.
NEAR_FULL_LTV_PERCENT = 99.999
_BISECT_HI = 0.999999


def _loops(loops: float) -> int:
    return max(0, math.floor(to_finite(loops)))


def leverage_from_ltv_percent(ltv_percent: float, loops: float) -> float:
    l = clamp(to_finite(ltv_percent), 0.0, 100.0) / 100
    return geometric_series_sum(l, _loops(loops))


def invert_leverage_to_ltv_percent(
    target_leverage: float,
    loops: float,
    tolerance: float = 1e-6,
    max_iterations: int = 64,
) -> float:
    """Solve ``S(l, loops) = target_leverage`` for ``l`` by bisection; returns a percent.

    ``S`` is strictly increasing in ``l`` on [0, 1), which is what makes the
    bisection valid. Targets at or past the ``loops + 1`` asymptote return
    ``NEAR_FULL_LTV_PERCENT``.
    """
    n = _loops(loops)
    target = max(1.0, to_finite(target_leverage, 1.0))
    max_s = n + 1

    if target <= 1 + EPS:
        return 0.0
    if target >= max_s - 1e-9:
        return NEAR_FULL_LTV_PERCENT

    lo, hi = 0.0, _BISECT_HI
    mid = 0.5
    for _ in range(max(1, int(max_iterations))):
        mid = (lo + hi) / 2
        diff = geometric_series_sum(mid, n) - target
        if abs(diff) < tolerance:
            break
        if diff < 0:
            lo = mid
        else:
            hi = mid

    return clamp(mid * 100, 0.0, 100.0)


def compute_totals(principal: float, ltv_percent: float, loops: float) -> LoopTotals:
    """Supply/borrow multiples and the resulting totals for a display-scale principal."""
    p = max(0.0, to_finite(principal))
    s = leverage_from_ltv_percent(ltv_percent, loops)
    b = max(0.0, s - 1)
    return LoopTotals(
        supply_multiple=s,
        borrow_multiple=b,
        total_supplied=p * s,
        total_borrowed=p * b,
    )
