"""Data models: all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal

RiskLevel = Literal["low", "medium", "high", "critical"]
StressDirection = Literal["up", "down"]


class CalculationWarning(str, Enum):
    NEGATIVE_SPREAD = "NEGATIVE_SPREAD"


# ---------------------------------------------------------------------------
# Lending market
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EModeCategory:
    """E-Mode category parameters, percents on the 0-100 scale."""

    id: int
    ltv: float
    liquidation_threshold: float
    liquidation_bonus: float = 0.0
    label: str = ""


@dataclass(frozen=True)
class RawReserveData:
    """One reserve as read from chain, before any unit conversion.

    Rates are ray-scaled, totals are in the asset's smallest unit, caps are whole
    tokens and risk parameters are basis points.
    """

    asset_address: str
    decimals: int
    liquidity_rate: int
    variable_borrow_rate: int
    total_supply: int
    total_borrow: int
    supply_cap: int
    borrow_cap: int
    ltv_bps: int
    liquidation_threshold_bps: int
    reserve_factor_bps: int
    emode_category_id: int = 0
    is_active: bool = True
    is_frozen: bool = False
    borrowing_enabled: bool | None = None


@dataclass(frozen=True)
class ReserveSnapshot:
    """Canonical reserve record: APYs as decimals, percents 0-100, totals in base units."""

    protocol: str
    chain: str
    asset: str
    supply_apy: float
    borrow_apy: float
    utilization: float
    total_supply: int
    total_borrow: int
    supply_cap: int
    borrow_cap: int
    ltv: float
    liquidation_threshold: float
    reserve_factor: float
    last_updated: datetime
    emode_category: int | None = None
    borrowable: bool | None = None


@dataclass(frozen=True)
class ReserveParams:
    ltv: float
    liquidation_threshold: float


# ---------------------------------------------------------------------------
# Curve
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PoolObservation:
    virtual_price: int
    timestamp: int


@dataclass(frozen=True)
class CurvePoolSnapshot:
    pool_address: str
    name: str
    chain: str
    base_apy: float
    boosted_apy: float
    tvl: int
    peg_deviation: float
    assets: tuple[str, ...]
    last_updated: datetime


# ---------------------------------------------------------------------------
# Calculations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoopCalculationResult:
    base_supply_apy: float
    base_borrow_apy: float
    leverage_multiplier: float
    gross_apy: float
    borrow_cost: float
    net_apy: float
    spread_apy: float
    warnings: frozenset[CalculationWarning] = frozenset()
    timestamp: datetime | None = None


@dataclass(frozen=True)
class LoopTotals:
    supply_multiple: float
    borrow_multiple: float
    total_supplied: float
    total_borrowed: float


@dataclass(frozen=True)
class HealthFactorParams:
    """Collateral and debt in a common base unit; threshold as a 0-100 percent."""

    total_collateral: int
    total_debt: int
    liquidation_threshold: float


@dataclass(frozen=True)
class HealthFactorResult:
    health_factor: float
    risk_level: RiskLevel


@dataclass(frozen=True)
class LiquidationRisk:
    health_factor: float
    liquidation_price: float
    risk_level: RiskLevel
    warning_message: str | None = None


@dataclass(frozen=True)
class DepegStressResult:
    base_price: float
    stress_percentage: float
    direction: StressDirection
    resulting_health_factor: float
    liquidation_risk: LiquidationRisk


@dataclass(frozen=True)
class EffectiveRiskParams:
    ltv: float
    liquidation_threshold: float
    mode: Literal["emode", "base"]


@dataclass(frozen=True)
class LoopPairRow:
    chain: str
    protocol: str
    supply_asset: str
    borrow_asset: str
    supply_apy: float
    borrow_apy: float
    net_spread: float
    utilization: float
    supply_cap_used_pct: float
    borrow_cap_used_pct: float
    emode_ltv: float
    emode_lt: float
    borrowable: bool
    last_updated: datetime
    emode_category_id: int | None = None


# ---------------------------------------------------------------------------
# Fan-out results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FetchFailure:
    """One unit of work (chain + asset or pool) that could not be fetched."""

    chain: str
    key: str
    kind: str
    message: str


@dataclass(frozen=True)
class FetchReport:
    results: tuple = ()
    failures: tuple[FetchFailure, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.failures
