"""Health factor, depeg stress and effective risk-parameter policy."""
from __future__ import annotations

import math
import sys

from ..models import (
    DepegStressResult,
    EffectiveRiskParams,
    HealthFactorParams,
    HealthFactorResult,
    LiquidationRisk,
    ReserveParams,
    ReserveSnapshot,
    RiskLevel,
    StressDirection,
)
from .fixed_point import clamp, to_finite

STABLE_ASSETS: frozenset[str] = frozenset({"USDC", "USDT", "DAI"})
STABLE_EMODE_DEFAULT = EffectiveRiskParams(ltv=93.0, liquidation_threshold=95.0, mode="emode")

LIQUIDATION_WARNING = "Position at risk of liquidation under stress."


def estimate_health_factor(params: HealthFactorParams) -> float:
    """HF = collateral * LT% / debt; +inf when there is no debt."""
    debt = to_finite(params.total_debt)
    if debt <= 0:
        return math.inf
    lt = clamp(to_finite(params.liquidation_threshold), 0.0, 100.0) / 100
    collateral = to_finite(params.total_collateral)
    return (collateral * lt) / debt


def classify_risk_level(health_factor: float) -> RiskLevel:
    if health_factor < 1.0:
        return "critical"
    if health_factor < 1.1:
        return "high"
    if health_factor < 1.3:
        return "medium"
    return "low"


def assess_health_factor(params: HealthFactorParams) -> HealthFactorResult:
    hf = estimate_health_factor(params)
    return HealthFactorResult(health_factor=hf, risk_level=classify_risk_level(hf))


def run_depeg_stress(
    params: HealthFactorParams,
    stress_percentage: float,
    direction: StressDirection,
) -> DepegStressResult:
    """Shock collateral by ``stress_percentage`` percentage points and recompute HF."""
    pct = max(0.0, to_finite(stress_percentage)) / 100
    factor = 1 - pct if direction == "down" else 1 + pct

    collateral = to_finite(params.total_collateral)
    scaled = to_finite(collateral * factor, default=sys.float_info.max)
    stressed = HealthFactorParams(
        total_collateral=max(0, math.floor(scaled)),
        total_debt=params.total_debt,
        liquidation_threshold=params.liquidation_threshold,
    )
    hf = estimate_health_factor(stressed)

    return DepegStressResult(
        base_price=1.0,
        stress_percentage=stress_percentage,
        direction=direction,
        resulting_health_factor=hf,
        liquidation_risk=LiquidationRisk(
            health_factor=hf,
            liquidation_price=0.0,
            risk_level=classify_risk_level(hf),
            warning_message=LIQUIDATION_WARNING if hf < 1 else None,
        ),
    )


def is_stable_stable_pair(deposit_asset: str, borrow_asset: str) -> bool:
    return deposit_asset in STABLE_ASSETS and borrow_asset in STABLE_ASSETS


def derive_effective_risk_params(
    deposit_asset: str,
    borrow_asset: str,
    deposit_params: ReserveParams | ReserveSnapshot | None = None,
) -> EffectiveRiskParams:
    """LTV/LT used by the calculator for a deposit/borrow pair on the same chain.

    Stable-to-stable pairs always get the stablecoin E-Mode defaults (93/95).
    Otherwise the deposit reserve's base parameters apply, and without those
    the result is zeros.
    """
    if is_stable_stable_pair(deposit_asset, borrow_asset):
        return STABLE_EMODE_DEFAULT

    if deposit_params is not None:
        ltv = deposit_params.ltv
        lt = deposit_params.liquidation_threshold
        if math.isfinite(ltv) and math.isfinite(lt):
            return EffectiveRiskParams(
                ltv=clamp(ltv, 0.0, 100.0),
                liquidation_threshold=clamp(lt, 0.0, 100.0),
                mode="base",
            )

    return EffectiveRiskParams(ltv=0.0, liquidation_threshold=0.0, mode="base")
