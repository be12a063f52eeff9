"""Leveraged loop APY via the geometric-series model."""
from __future__ import annotations

from datetime import datetime, timezone

from ..models import CalculationWarning, LoopCalculationResult
from .fixed_point import to_finite
from .leverage import leverage_from_ltv_percent


def calculate_net_spread(supply_apy: float, borrow_apy: float) -> float:
    """Simple spread of two decimal rates."""
    return to_finite(supply_apy) - to_finite(borrow_apy)


def compute_loop_apy(
    supply_apy: float,
    borrow_apy: float,
    ltv_percent: float,
    loops: int,
) -> LoopCalculationResult:
    """Net APY of supplying, borrowing at ``ltv_percent`` and re-supplying ``loops`` times.

    APYs are decimals (0.05 = 5%), ``ltv_percent`` is on the 0-100 scale.
    NEGATIVE_SPREAD flags the base rates, not the leveraged net result.
    """
    supply = to_finite(supply_apy)
    borrow = to_finite(borrow_apy)

    supply_multiple = leverage_from_ltv_percent(ltv_percent, loops)
    borrow_multiple = max(0.0, supply_multiple - 1)

    gross = supply * supply_multiple
    cost = borrow * borrow_multiple

    warnings: set[CalculationWarning] = set()
    if supply <= borrow:
        warnings.add(CalculationWarning.NEGATIVE_SPREAD)

    return LoopCalculationResult(
        base_supply_apy=supply,
        base_borrow_apy=borrow,
        leverage_multiplier=supply_multiple,
        gross_apy=gross,
        borrow_cost=cost,
        net_apy=gross - cost,
        spread_apy=calculate_net_spread(supply, borrow),
        warnings=frozenset(warnings),
        timestamp=datetime.now(timezone.utc),
    )
