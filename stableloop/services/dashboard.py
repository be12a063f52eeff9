"""Dashboard orchestration: composes chain clients, data sources and the engine."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from ..calculations import (
    assess_health_factor,
    build_loop_rows,
    compute_loop_apy,
    compute_totals,
    derive_effective_risk_params,
    invert_leverage_to_ltv_percent,
    run_depeg_stress,
)
from ..calculations.fixed_point import WAD, clamp
from ..chains.evm import EvmClient
from ..config import AppConfig
from ..errors import ProviderError
from ..interfaces.chain import ChainClient
from ..interfaces.pool_source import BoostRateSource, PoolDataSource
from ..interfaces.reserve_source import ReserveDataSource
from ..models import (
    DepegStressResult,
    EffectiveRiskParams,
    FetchReport,
    HealthFactorParams,
    HealthFactorResult,
    LoopCalculationResult,
    LoopPairRow,
    LoopTotals,
    ReserveSnapshot,
)
from ..protocols.aave import AaveV3Adapter
from ..protocols.curve import ConvexBoostSource, CurveAdapter, CurvePoolResolver, ObservationCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalculatorRequest:
    chain: str
    deposit_asset: str
    borrow_asset: str
    supply_apy: float | None
    borrow_apy: float | None
    loops: int
    principal: float = 0.0
    ltv_percent: float | None = None
    target_leverage: float | None = None


@dataclass(frozen=True)
class CalculatorReport:
    ltv_percent: float
    risk_params: EffectiveRiskParams
    loop: LoopCalculationResult
    totals: LoopTotals
    health: HealthFactorResult
    stress: tuple[DepegStressResult, ...]


class Dashboard:
    """Fetches reserves and pools across chains and derives display-ready rows."""

    def __init__(
        self,
        config: AppConfig,
        clients: dict[str, ChainClient] | None = None,
        cache: ObservationCache | None = None,
        boost_source: BoostRateSource | None = None,
    ) -> None:
        self._config = config

        # Build chain clients
        if clients is None:
            clients = {
                name: EvmClient(name, chain_cfg)
                for name, chain_cfg in config.chains.items()
            }
        self._clients = clients

        if boost_source is None and config.boost.convex_api_base:
            boost_source = ConvexBoostSource(config.boost.convex_api_base)

        self.cache = cache if cache is not None else ObservationCache()
        self.reserves: ReserveDataSource = AaveV3Adapter(
            clients, config.chains, config.stablecoins
        )
        resolver = None
        if config.curve_api.base:
            resolver = CurvePoolResolver(config.curve_api.base, config.curve_api.timeout)
        self.pools: PoolDataSource = CurveAdapter(
            clients, config.chains, config.stablecoins, self.cache, boost_source, resolver=resolver
        )

    # ------------------------------------------------------------------
    # Selection helpers
    # ------------------------------------------------------------------

    def _chains(self, chains: list[str] | None) -> list[str]:
        return list(chains) if chains else list(self._config.dashboard.chains)

    def _assets(self, assets: list[str] | None) -> list[str]:
        return list(assets) if assets else list(self._config.dashboard.assets)

    # ------------------------------------------------------------------
    # Core workflows
    # ------------------------------------------------------------------

    async def fetch_reserves(
        self, chains: list[str] | None = None, assets: list[str] | None = None
    ) -> FetchReport:
        return await self.reserves.fetch_data(self._chains(chains), self._assets(assets))

    async def fetch_pools(
        self, chains: list[str] | None = None, assets: list[str] | None = None
    ) -> FetchReport:
        return await self.pools.fetch_data(self._chains(chains), self._assets(assets))

    async def build_loop_rows(
        self, chains: list[str] | None = None, assets: list[str] | None = None
    ) -> tuple[list[LoopPairRow], FetchReport]:
        """Loop-pair rows plus the reserve report they came from (for its failures)."""
        chain_list = self._chains(chains)
        asset_list = self._assets(assets)
        report = await self.reserves.fetch_data(chain_list, asset_list)
        emode = {c: await self.reserves.get_emode_categories(c) for c in chain_list}
        return build_loop_rows(report.results, emode, asset_list), report

    def calculate(
        self,
        request: CalculatorRequest,
        deposit_reserve: ReserveSnapshot | None = None,
    ) -> CalculatorReport:
        """Offline calculator: loop APY, totals, health factor and a depeg stress grid.

        The LTV comes from ``ltv_percent`` or is inverted from ``target_leverage``,
        then capped at both the configured UI maximum and the pair's effective LTV.
        """
        if request.supply_apy is None or request.borrow_apy is None:
            raise ValueError("supply_apy and borrow_apy are required; use calculate_live to read them")
        risk = derive_effective_risk_params(
            request.deposit_asset, request.borrow_asset, deposit_reserve
        )
        if request.target_leverage is not None:
            ltv = invert_leverage_to_ltv_percent(request.target_leverage, request.loops)
        else:
            ltv = request.ltv_percent if request.ltv_percent is not None else risk.ltv
        ltv = clamp(ltv, 0.0, min(self._config.calculator.max_ltv, risk.ltv))

        loop = compute_loop_apy(request.supply_apy, request.borrow_apy, ltv, request.loops)
        totals = compute_totals(request.principal, ltv, request.loops)

        hf_params = HealthFactorParams(
            total_collateral=int(totals.total_supplied * WAD),
            total_debt=int(totals.total_borrowed * WAD),
            liquidation_threshold=risk.liquidation_threshold,
        )
        stress = tuple(
            run_depeg_stress(hf_params, pct, direction)
            for pct in self._config.calculator.stress_percentages
            for direction in ("down", "up")
        )
        return CalculatorReport(
            ltv_percent=ltv,
            risk_params=risk,
            loop=loop,
            totals=totals,
            health=assess_health_factor(hf_params),
            stress=stress,
        )

    async def _live_reserve(
        self, chain: str, asset: str, required: bool
    ) -> ReserveSnapshot | None:
        try:
            return await self.reserves.get_reserve_data(chain, asset)
        except ProviderError as e:
            if required:
                raise
            logger.warning("No live %s reserve on %s, using default risk params: %s", asset, chain, e)
            return None

    async def calculate_live(self, request: CalculatorRequest) -> CalculatorReport:
        """Calculator fed by the live reserves of ``request.chain``.

        Omitted APYs come from the deposit reserve (supply) and the borrow reserve
        (borrow). The deposit reserve also carries the base LTV/LT used for pairs
        outside the stablecoin E-Mode.
        """
        deposit = await self._live_reserve(
            request.chain, request.deposit_asset, required=request.supply_apy is None
        )
        borrow = deposit if request.borrow_asset == request.deposit_asset else None
        if request.borrow_apy is None and borrow is None:
            borrow = await self._live_reserve(request.chain, request.borrow_asset, required=True)

        request = replace(
            request,
            supply_apy=request.supply_apy if request.supply_apy is not None else deposit.supply_apy,
            borrow_apy=request.borrow_apy if request.borrow_apy is not None else borrow.borrow_apy,
        )
        return self.calculate(request, deposit)

    async def poll_once(self) -> None:
        """One poll cycle: reserves, loop rows and pools, logged as summaries."""
        rows, reserve_report = await self.build_loop_rows()
        pool_report = await self.fetch_pools()

        logger.info(
            "Poll %s: %d reserves, %d loop rows, %d pools, %d failures",
            datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            len(reserve_report.results),
            len(rows),
            len(pool_report.results),
            len(reserve_report.failures) + len(pool_report.failures),
        )
        for row in rows[:5]:
            logger.info(
                "  %s %s→%s spread %.2f%% util %.2f%%",
                row.chain, row.supply_asset, row.borrow_asset,
                row.net_spread * 100, row.utilization,
            )
        for failure in reserve_report.failures + pool_report.failures:
            logger.warning("  %s/%s: %s", failure.chain, failure.key, failure.kind)

    async def run_continuous(self, interval_seconds: int | None = None) -> None:
        """Run the polling loop until cancelled."""
        interval = interval_seconds or self._config.dashboard.poll_interval_seconds
        logger.info("Starting continuous polling (every %d seconds)", interval)

        while True:
            try:
                await self.poll_once()
                await asyncio.sleep(interval)
            except Exception as e:
                logger.error("Error in polling loop: %s", e)
                await asyncio.sleep(60)
