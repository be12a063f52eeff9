"""Fixed-point helpers: ray, basis points, percents and the geometric series.

Every function here is total: non-finite or out-of-domain input is coerced to a
safe value instead of raising.
"""
from __future__ import annotations

import math
from typing import Any

RAY = 10**27
WAD = 10**18
EPS = 1e-12


def to_finite(value: Any, default: float = 0.0) -> float:
    """Return ``value`` as a finite float, or ``default``."""
    try:
        f = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return f if math.isfinite(f) else default


def to_int(value: Any) -> int:
    """Coerce to int, truncating floats; non-numeric or non-finite becomes 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        f = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return int(f) if math.isfinite(f) else 0


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def div_trunc(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero, as EVM and BigInt division do."""
    q = abs(numerator) // abs(denominator)
    return q if (numerator >= 0) == (denominator > 0) else -q


def int_ratio(numerator: int, denominator: int) -> float:
    """``numerator / denominator`` as a float; quotients past the float range become +/-inf."""
    try:
        return numerator / denominator
    except OverflowError:
        return math.inf if (numerator >= 0) == (denominator > 0) else -math.inf


def percent_of_integers(numerator: Any, denominator: Any) -> float:
    """``numerator / denominator * 100`` in scaled-integer math, clamped to [0, 100].

    A zero denominator yields 0.
    """
    num = to_int(numerator)
    den = to_int(denominator)
    if den == 0:
        return 0.0
    basis = clamp(div_trunc(num * 10_000, den), 0, 10_000)
    return basis / 100


def ray_to_decimal(ray_value: Any) -> float:
    return int_ratio(to_int(ray_value), RAY)


def bps_to_percent(bps: Any) -> float:
    """Basis points to a 0-100 percent."""
    return clamp(to_int(bps), 0, 10_000) / 100


def geometric_series_sum(ratio: Any, n: Any) -> float:
    """``1 + ratio + ratio**2 + ... + ratio**n``; negative ``n`` yields 0."""
    r = to_finite(ratio)
    loops = math.floor(to_finite(n))
    if loops < 0:
        return 0.0
    if abs(r - 1) < EPS:
        return float(loops + 1)
    try:
        return (1 - r ** (loops + 1)) / (1 - r)
    except OverflowError:
        return math.inf if r > 1 else 0.0
