"""Integration tests for the dashboard service with mocked data sources."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from stableloop.calculations.leverage import leverage_from_ltv_percent
from stableloop.config import AppConfig
from stableloop.errors import NetworkError
from stableloop.models import FetchFailure, FetchReport, ReserveParams
from stableloop.protocols.curve import ConvexBoostSource
from stableloop.services import CalculatorRequest, Dashboard


@pytest.fixture()
def dashboard(sample_app_config: AppConfig) -> Dashboard:
    return Dashboard(sample_app_config, clients={"ethereum": MagicMock()})


class TestConstruction:
    def test_builds_evm_clients(self, sample_app_config: AppConfig) -> None:
        d = Dashboard(sample_app_config)
        assert d.reserves.is_supported("ethereum")
        assert d.pools.is_supported("ethereum")

    def test_boost_source_from_config(self, sample_app_config: AppConfig) -> None:
        from dataclasses import replace

        from stableloop.config import BoostConfig

        cfg = replace(sample_app_config, boost=BoostConfig("https://convex.example.com"))
        d = Dashboard(cfg, clients={})
        assert isinstance(d.pools._boost, ConvexBoostSource)


class TestLoopRows:
    @pytest.mark.asyncio
    async def test_rows_and_failures(self, dashboard: Dashboard, make_snapshot) -> None:
        failure = FetchFailure("ethereum", "DAI", "NetworkError", "down")
        dashboard.reserves.fetch_data = AsyncMock(
            return_value=FetchReport(
                results=(
                    make_snapshot("USDC", utilization=40.0),
                    make_snapshot("USDT", utilization=85.0, borrow_apy=0.04),
                ),
                failures=(failure,),
            )
        )

        rows, report = await dashboard.build_loop_rows()

        assert len(rows) == 4
        usdc_usdt = next(r for r in rows if (r.supply_asset, r.borrow_asset) == ("USDC", "USDT"))
        assert usdc_usdt.utilization == 85.0
        assert (usdc_usdt.emode_ltv, usdc_usdt.emode_lt) == (93.0, 95.0)
        assert report.failures == (failure,)
        dashboard.reserves.fetch_data.assert_awaited_once_with(["ethereum"], ["USDC", "USDT", "DAI"])

    @pytest.mark.asyncio
    async def test_selection_override(self, dashboard: Dashboard) -> None:
        dashboard.pools.fetch_data = AsyncMock(return_value=FetchReport())
        await dashboard.fetch_pools(["ethereum"], ["USDC"])
        dashboard.pools.fetch_data.assert_awaited_once_with(["ethereum"], ["USDC"])


class TestCalculate:
    def test_stable_pair_capped_at_ui_max(self, dashboard: Dashboard) -> None:
        report = dashboard.calculate(
            CalculatorRequest("ethereum", "USDC", "USDT", 0.05, 0.03, loops=3, principal=1000)
        )
        assert report.risk_params.mode == "emode"
        assert report.ltv_percent == 90.0
        assert report.loop.leverage_multiplier == pytest.approx(leverage_from_ltv_percent(90, 3))
        assert report.health.health_factor > 1
        assert len(report.stress) == 6

    def test_target_leverage_inverted(self, dashboard: Dashboard) -> None:
        target = leverage_from_ltv_percent(60, 4)
        report = dashboard.calculate(
            CalculatorRequest(
                "ethereum", "USDC", "DAI", 0.05, 0.03, loops=4, principal=1000, target_leverage=target
            )
        )
        assert report.ltv_percent == pytest.approx(60, abs=1e-3)
        assert report.totals.supply_multiple == pytest.approx(target, abs=1e-4)

    def test_non_stable_uses_deposit_reserve(self, dashboard: Dashboard) -> None:
        report = dashboard.calculate(
            CalculatorRequest("ethereum", "FRAX", "USDC", 0.05, 0.03, loops=2, ltv_percent=80),
            deposit_reserve=ReserveParams(ltv=70.0, liquidation_threshold=75.0),
        )
        assert report.risk_params.mode == "base"
        assert report.ltv_percent == 70.0

    def test_health_factor_matches_totals(self, dashboard: Dashboard) -> None:
        report = dashboard.calculate(
            CalculatorRequest(
                "ethereum", "USDC", "USDT", 0.05, 0.03, loops=1, principal=100, ltv_percent=50
            )
        )
        # supplied 150, borrowed 50, LT 95%
        assert report.health.health_factor == pytest.approx(150 * 0.95 / 50)

    def test_unlevered_has_infinite_health(self, dashboard: Dashboard) -> None:
        report = dashboard.calculate(
            CalculatorRequest("ethereum", "USDC", "USDT", 0.05, 0.03, loops=0, principal=100)
        )
        assert report.health.risk_level == "low"
        assert all(s.liquidation_risk.warning_message is None for s in report.stress)


class TestCalculateLive:
    @pytest.mark.asyncio
    async def test_non_stable_deposit_uses_live_reserve(
        self, dashboard: Dashboard, make_snapshot
    ) -> None:
        dashboard.reserves.get_reserve_data = AsyncMock(
            return_value=make_snapshot("FRAX", ltv=75.0, liquidation_threshold=80.0)
        )

        report = await dashboard.calculate_live(
            CalculatorRequest("ethereum", "FRAX", "USDC", 0.05, 0.03, 3, 1000.0, ltv_percent=80.0)
        )

        assert report.risk_params.mode == "base"
        assert report.ltv_percent == 75.0
        assert report.loop.leverage_multiplier == pytest.approx(leverage_from_ltv_percent(75, 3))
        assert report.health.health_factor < float("inf")
        dashboard.reserves.get_reserve_data.assert_awaited_once_with("ethereum", "FRAX")

    @pytest.mark.asyncio
    async def test_apys_default_from_reserves(self, dashboard: Dashboard, make_snapshot) -> None:
        reserves = {
            "USDC": make_snapshot("USDC", supply_apy=0.06, borrow_apy=0.05),
            "USDT": make_snapshot("USDT", supply_apy=0.04, borrow_apy=0.02),
        }
        dashboard.reserves.get_reserve_data = AsyncMock(side_effect=lambda chain, asset: reserves[asset])

        report = await dashboard.calculate_live(
            CalculatorRequest("ethereum", "USDC", "USDT", None, None, loops=2, principal=100)
        )

        assert report.loop.base_supply_apy == 0.06
        assert report.loop.base_borrow_apy == 0.02
        assert dashboard.reserves.get_reserve_data.await_count == 2

    @pytest.mark.asyncio
    async def test_explicit_apys_survive_unavailable_reserve(self, dashboard: Dashboard) -> None:
        dashboard.reserves.get_reserve_data = AsyncMock(side_effect=NetworkError("rpc", "ethereum"))

        report = await dashboard.calculate_live(
            CalculatorRequest("ethereum", "USDC", "USDT", 0.05, 0.03, loops=2, principal=100)
        )

        assert report.risk_params.mode == "emode"
        assert report.loop.base_supply_apy == 0.05

    @pytest.mark.asyncio
    async def test_missing_apy_needs_reserve(self, dashboard: Dashboard) -> None:
        dashboard.reserves.get_reserve_data = AsyncMock(side_effect=NetworkError("rpc", "ethereum"))

        with pytest.raises(NetworkError):
            await dashboard.calculate_live(
                CalculatorRequest("ethereum", "USDC", "USDT", None, 0.03, loops=2)
            )

    def test_offline_requires_apys(self, dashboard: Dashboard) -> None:
        with pytest.raises(ValueError):
            dashboard.calculate(CalculatorRequest("ethereum", "USDC", "USDT", None, 0.03, loops=2))

class TestPolling:
    @pytest.mark.asyncio
    async def test_poll_once_logs_summary(self, dashboard: Dashboard, make_snapshot, caplog) -> None:
        dashboard.reserves.fetch_data = AsyncMock(
            return_value=FetchReport(results=(make_snapshot("USDC"),))
        )
        dashboard.pools.fetch_data = AsyncMock(
            return_value=FetchReport(failures=(FetchFailure("ethereum", "3pool", "ContractError", "x"),))
        )

        with caplog.at_level("INFO", logger="stableloop.services.dashboard"):
            await dashboard.poll_once()

        assert "1 reserves, 1 loop rows, 0 pools, 1 failures" in caplog.text
        assert "ethereum/3pool: ContractError" in caplog.text

    @pytest.mark.asyncio
    async def test_run_continuous_survives_errors(self, dashboard: Dashboard) -> None:
        dashboard.poll_once = AsyncMock(side_effect=[NetworkError("rpc", "ethereum"), None])
        sleep = AsyncMock(side_effect=[None, asyncio.CancelledError()])

        with patch("stableloop.services.dashboard.asyncio.sleep", sleep):
            with pytest.raises(asyncio.CancelledError):
                await dashboard.run_continuous(5)

        assert dashboard.poll_once.await_count == 2
        assert sleep.await_args_list[0].args == (60,)
        assert sleep.await_args_list[1].args == (5,)
