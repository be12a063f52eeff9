"""Unit tests for loop APY."""
from __future__ import annotations

import pytest

from stableloop.calculations import calculate_net_spread, compute_loop_apy
from stableloop.models import CalculationWarning


class TestComputeLoopApy:
    def test_positive_spread(self) -> None:
        result = compute_loop_apy(0.05, 0.03, 80, 3)
        s = 1 + 0.8 + 0.64 + 0.512
        assert result.leverage_multiplier == pytest.approx(s)
        assert result.gross_apy == pytest.approx(0.05 * s)
        assert result.borrow_cost == pytest.approx(0.03 * (s - 1))
        assert result.net_apy == pytest.approx(0.08904)
        assert result.spread_apy == pytest.approx(0.02)
        assert result.warnings == frozenset()
        assert result.timestamp is not None

    def test_negative_spread_flagged(self) -> None:
        result = compute_loop_apy(0.02, 0.03, 50, 2)
        assert CalculationWarning.NEGATIVE_SPREAD in result.warnings
        assert result.net_apy < 0

    def test_equal_rates_flagged(self) -> None:
        result = compute_loop_apy(0.03, 0.03, 50, 2)
        assert CalculationWarning.NEGATIVE_SPREAD in result.warnings

    def test_zero_loops(self) -> None:
        result = compute_loop_apy(0.05, 0.03, 80, 0)
        assert result.leverage_multiplier == 1.0
        assert result.net_apy == pytest.approx(0.05)

    def test_non_finite_input(self) -> None:
        result = compute_loop_apy(float("nan"), 0.03, 80, 3)
        assert result.base_supply_apy == 0.0


class TestNetSpread:
    def test_spread(self) -> None:
        assert calculate_net_spread(0.05, 0.03) == pytest.approx(0.02)
