"""Pure parsing and normalization for Aave v3 reserves: no I/O."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ...calculations.fixed_point import bps_to_percent, percent_of_integers, ray_to_decimal
from ...models import RawReserveData, ReserveSnapshot


@dataclass(frozen=True)
class ReserveConfiguration:
    """Fields unpacked from the ReserveConfigurationMap bitmap."""

    ltv_bps: int
    liquidation_threshold_bps: int
    liquidation_bonus_bps: int
    decimals: int
    is_active: bool
    is_frozen: bool
    borrowing_enabled: bool
    reserve_factor_bps: int
    borrow_cap: int
    supply_cap: int
    emode_category_id: int


def _bits(word: int, start: int, width: int) -> int:
    return (word >> start) & ((1 << width) - 1)


def decode_reserve_configuration(word: int) -> ReserveConfiguration:
    """Unpack the configuration word.

    Layout: ltv 0-15, liquidation threshold 16-31, bonus 32-47, decimals 48-55,
    active 56, frozen 57, borrowing enabled 58, reserve factor 64-79,
    borrow cap 80-115, supply cap 116-151, E-Mode category 168-175.
    Caps are whole tokens.
    """
    return ReserveConfiguration(
        ltv_bps=_bits(word, 0, 16),
        liquidation_threshold_bps=_bits(word, 16, 16),
        liquidation_bonus_bps=_bits(word, 32, 16),
        decimals=_bits(word, 48, 8),
        is_active=bool(_bits(word, 56, 1)),
        is_frozen=bool(_bits(word, 57, 1)),
        borrowing_enabled=bool(_bits(word, 58, 1)),
        reserve_factor_bps=_bits(word, 64, 16),
        borrow_cap=_bits(word, 80, 36),
        supply_cap=_bits(word, 116, 36),
        emode_category_id=_bits(word, 168, 8),
    )


def is_suspect_response(raw: RawReserveData) -> bool:
    """All-zero rates and totals for an active reserve mean an incomplete read."""
    return (
        raw.is_active
        and raw.liquidity_rate == 0
        and raw.variable_borrow_rate == 0
        and raw.total_supply == 0
        and raw.total_borrow == 0
    )


def scale_cap(cap_tokens: int, decimals: int) -> int:
    """Whole-token cap to base units so it compares with the totals."""
    return int(cap_tokens) * 10 ** int(decimals)


def normalize_reserve(
    raw: RawReserveData,
    *,
    protocol: str,
    chain: str,
    asset: str,
    timestamp: datetime,
) -> ReserveSnapshot:
    """Convert a raw reserve read into the canonical snapshot.

    Rates: ray to decimal. Caps: whole tokens to base units. Risk parameters:
    basis points to 0-100 percents. Utilization: borrow / supply as a percent.
    """
    return ReserveSnapshot(
        protocol=protocol,
        chain=chain,
        asset=asset,
        supply_apy=ray_to_decimal(raw.liquidity_rate),
        borrow_apy=ray_to_decimal(raw.variable_borrow_rate),
        utilization=percent_of_integers(raw.total_borrow, raw.total_supply),
        total_supply=raw.total_supply,
        total_borrow=raw.total_borrow,
        supply_cap=scale_cap(raw.supply_cap, raw.decimals),
        borrow_cap=scale_cap(raw.borrow_cap, raw.decimals),
        ltv=bps_to_percent(raw.ltv_bps),
        liquidation_threshold=bps_to_percent(raw.liquidation_threshold_bps),
        reserve_factor=bps_to_percent(raw.reserve_factor_bps),
        emode_category=raw.emode_category_id if raw.emode_category_id > 0 else None,
        borrowable=raw.borrowing_enabled,
        last_updated=timestamp,
    )
