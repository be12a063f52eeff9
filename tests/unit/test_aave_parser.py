"""Unit tests for Aave reserve parsing: pure functions, no network."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from stableloop.calculations.fixed_point import RAY
from stableloop.models import RawReserveData
from stableloop.protocols.aave.parser import (
    decode_reserve_configuration,
    is_suspect_response,
    normalize_reserve,
    scale_cap,
)

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _config_word(
    ltv: int = 7500,
    lt: int = 7800,
    bonus: int = 10450,
    decimals: int = 6,
    active: bool = True,
    frozen: bool = False,
    borrowing: bool = True,
    reserve_factor: int = 1000,
    borrow_cap: int = 1_400_000_000,
    supply_cap: int = 1_500_000_000,
    emode: int = 1,
) -> int:
    return (
        ltv
        | lt << 16
        | bonus << 32
        | decimals << 48
        | int(active) << 56
        | int(frozen) << 57
        | int(borrowing) << 58
        | reserve_factor << 64
        | borrow_cap << 80
        | supply_cap << 116
        | emode << 168
    )


def _raw(**overrides) -> RawReserveData:
    fields = dict(
        asset_address="0xA0b86991C6218b36c1d19D4a2e9Eb0cE3606eB48",
        decimals=6,
        liquidity_rate=RAY // 20,
        variable_borrow_rate=RAY * 3 // 100,
        total_supply=1_000_000_000_000,
        total_borrow=750_000_000_000,
        supply_cap=2_000_000,
        borrow_cap=1_000_000,
        ltv_bps=7500,
        liquidation_threshold_bps=7800,
        reserve_factor_bps=1000,
        emode_category_id=1,
        borrowing_enabled=True,
    )
    fields.update(overrides)
    return RawReserveData(**fields)


class TestDecodeReserveConfiguration:
    def test_all_fields(self) -> None:
        cfg = decode_reserve_configuration(_config_word())
        assert cfg.ltv_bps == 7500
        assert cfg.liquidation_threshold_bps == 7800
        assert cfg.liquidation_bonus_bps == 10450
        assert cfg.decimals == 6
        assert cfg.is_active is True
        assert cfg.is_frozen is False
        assert cfg.borrowing_enabled is True
        assert cfg.reserve_factor_bps == 1000
        assert cfg.borrow_cap == 1_400_000_000
        assert cfg.supply_cap == 1_500_000_000
        assert cfg.emode_category_id == 1

    def test_flags(self) -> None:
        cfg = decode_reserve_configuration(_config_word(active=False, frozen=True, borrowing=False))
        assert (cfg.is_active, cfg.is_frozen, cfg.borrowing_enabled) == (False, True, False)

    def test_zero_word(self) -> None:
        cfg = decode_reserve_configuration(0)
        assert cfg.decimals == 0
        assert cfg.is_active is False


class TestNormalizeReserve:
    def test_units(self) -> None:
        snap = normalize_reserve(_raw(), protocol="aave", chain="ethereum", asset="USDC", timestamp=NOW)
        assert snap.supply_apy == pytest.approx(0.05)
        assert snap.borrow_apy == pytest.approx(0.03)
        assert snap.utilization == 75.0
        assert snap.supply_cap == 2_000_000 * 10**6
        assert snap.borrow_cap == 1_000_000 * 10**6
        assert snap.ltv == 75.0
        assert snap.liquidation_threshold == 78.0
        assert snap.reserve_factor == 10.0
        assert snap.emode_category == 1
        assert snap.borrowable is True
        assert snap.last_updated == NOW

    def test_no_emode_is_none(self) -> None:
        snap = normalize_reserve(
            _raw(emode_category_id=0), protocol="aave", chain="ethereum", asset="USDC", timestamp=NOW
        )
        assert snap.emode_category is None

    def test_empty_reserve_utilization_zero(self) -> None:
        snap = normalize_reserve(
            _raw(total_supply=0, total_borrow=0), protocol="aave", chain="ethereum", asset="USDC", timestamp=NOW
        )
        assert snap.utilization == 0.0


class TestSuspectResponse:
    def test_all_zero_active_is_suspect(self) -> None:
        raw = _raw(liquidity_rate=0, variable_borrow_rate=0, total_supply=0, total_borrow=0)
        assert is_suspect_response(raw) is True

    def test_inactive_is_not_suspect(self) -> None:
        raw = _raw(
            liquidity_rate=0, variable_borrow_rate=0, total_supply=0, total_borrow=0, is_active=False
        )
        assert is_suspect_response(raw) is False

    def test_normal_is_not_suspect(self) -> None:
        assert is_suspect_response(_raw()) is False


def test_scale_cap() -> None:
    assert scale_cap(5, 18) == 5 * 10**18
    assert scale_cap(0, 6) == 0
