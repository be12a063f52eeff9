"""Curve stable pool data source: on-chain reads composed with pool analytics."""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from ...config import ChainConfig, CurvePoolConfig, StablecoinConfig
from ...errors import ContractError, ProviderError
from ...interfaces.chain import ChainClient
from ...interfaces.pool_source import BoostRateSource, PoolAddressResolver
from ...models import CurvePoolSnapshot, FetchFailure, FetchReport
from . import analytics
from .analytics import ObservationCache

logger = logging.getLogger(__name__)

PROVIDER = "curve"
ADDRESS_PROVIDER = "0x0000000022D53366457F9d5E68Ec105046FC4383"
MAX_COINS = 4


def filter_pools_by_assets(
    pools: Sequence[CurvePoolConfig], assets: Sequence[str]
) -> list[CurvePoolConfig]:
    """Pools sharing at least one asset with the selection; no selection keeps all."""
    if not assets:
        return list(pools)
    wanted = set(assets)
    return [p for p in pools if wanted.intersection(p.assets)]


class CurveAdapter:
    """Read curated Curve stable pools and derive TVL, peg deviation and base APY."""

    def __init__(
        self,
        clients: dict[str, ChainClient],
        chains: dict[str, ChainConfig],
        stablecoins: dict[str, StablecoinConfig],
        cache: ObservationCache,
        boost_source: BoostRateSource | None = None,
        clock: Callable[[], float] = time.time,
        resolver: PoolAddressResolver | None = None,
    ) -> None:
        self._clients = clients
        self._chains = chains
        self._stablecoins = stablecoins
        self._cache = cache
        self._boost = boost_source
        self._clock = clock
        self._resolver = resolver
        self._resolved: dict[str, tuple[CurvePoolConfig, ...]] = {}

    def is_supported(self, chain: str) -> bool:
        return chain in self._clients and chain in self._chains

    def _pools(self, chain: str) -> tuple[CurvePoolConfig, ...]:
        if chain in self._resolved:
            return self._resolved[chain]
        cfg = self._chains.get(chain)
        return cfg.curve_pools if cfg is not None else ()

    def activatable_pools(self, chain: str) -> list[CurvePoolConfig]:
        return [p for p in self._pools(chain) if p.activatable]

    async def ensure_resolved(self, chain: str) -> None:
        """Resolve missing pool addresses once per chain when none are activatable."""
        if self._resolver is None or chain in self._resolved or self.activatable_pools(chain):
            return
        pools = self._pools(chain)
        if not pools:
            return
        resolved = await self._resolver.resolve(chain, pools, self._stablecoins)
        if resolved is None:
            logger.warning("[%s] Curve pool addresses unresolved", chain)
            return
        self._resolved[chain] = resolved
        logger.info(
            "[%s] Activatable Curve pools after resolve: %s",
            chain, [p.name for p in resolved if p.activatable],
        )

    def _registry_pool(self, chain: str, pool_address: str) -> CurvePoolConfig | None:
        wanted = pool_address.lower()
        return next(
            (p for p in self._pools(chain) if p.pool_address and p.pool_address.lower() == wanted),
            None,
        )

    async def _read_virtual_price(
        self,
        chain: str,
        client: ChainClient,
        pool_address: str,
        registry_pool: CurvePoolConfig | None,
    ) -> int:
        """Pool ``get_virtual_price``; on mainnet, fall back to the Curve registry."""
        try:
            (vp,) = await client.call_function(pool_address, "get_virtual_price()")
            return int(vp)
        except ProviderError as e:
            if chain != "ethereum" or registry_pool is None or not registry_pool.lp_token_address:
                raise ContractError(PROVIDER, chain, pool_address, e) from e
            logger.warning(
                "[%s] get_virtual_price failed for %s, trying registry: %s",
                chain, pool_address, e,
            )

        try:
            (registry,) = await client.call_function(
                ADDRESS_PROVIDER, "get_registry()", (), ("address",)
            )
            (vp,) = await client.call_function(
                registry,
                "get_virtual_price_from_lp_token(address)",
                (registry_pool.lp_token_address,),
            )
        except ProviderError as e:
            raise ContractError(PROVIDER, chain, pool_address, e) from e
        logger.info("[%s] Virtual price for %s read via registry", chain, pool_address)
        return int(vp)

    async def _read_coins(
        self, client: ChainClient, pool_address: str
    ) -> list[tuple[str, int]]:
        """(token, balance) for coin indices 0..3, stopping at the first failing index."""
        coins: list[tuple[str, int]] = []
        for i in range(MAX_COINS):
            try:
                (token,) = await client.call_function(
                    pool_address, "coins(uint256)", (i,), ("address",)
                )
                (balance,) = await client.call_function(
                    pool_address, "balances(uint256)", (i,)
                )
            except ProviderError:
                break
            coins.append((token, int(balance)))
        return coins

    async def get_pool_data(self, chain: str, pool_address: str) -> CurvePoolSnapshot:
        if not self.is_supported(chain):
            raise ProviderError(f"No client configured for chain {chain}", PROVIDER, chain)
        client = self._clients[chain]
        registry_pool = self._registry_pool(chain, pool_address)

        vp = await self._read_virtual_price(chain, client, pool_address, registry_pool)

        if registry_pool is None or not registry_pool.lp_token_address:
            raise ProviderError(
                f"LP token address missing for pool {pool_address} on chain {chain}",
                PROVIDER,
                chain,
            )

        try:
            (lp_supply,) = await client.call_function(
                registry_pool.lp_token_address, "totalSupply()"
            )
        except ProviderError as e:
            raise ContractError(PROVIDER, chain, registry_pool.lp_token_address, e) from e

        symbols: list[str] = []
        balances: list[int] = []
        decimals: list[int] = []
        for token, balance in await self._read_coins(client, pool_address):
            symbol = analytics.token_to_stable_asset(chain, token, self._stablecoins)
            if symbol is None:
                logger.debug("[%s] Unrecognized coin %s in %s", chain, token, pool_address)
                continue
            symbols.append(symbol)
            balances.append(balance)
            decimals.append(self._stablecoins[symbol].decimals)

        now = int(self._clock())
        base_apy = analytics.record_base_apy(self._cache, chain, pool_address, vp, now)

        boosted_apy = base_apy
        if self._boost is not None:
            boost = await self._boost.fetch_boosted_apy(chain, registry_pool)
            if boost is not None:
                boosted_apy = boost

        return CurvePoolSnapshot(
            pool_address=pool_address,
            name=registry_pool.name or "Curve Pool",
            chain=chain,
            base_apy=base_apy,
            boosted_apy=boosted_apy,
            tvl=analytics.compute_tvl(int(lp_supply), vp),
            peg_deviation=analytics.compute_peg_deviation(balances, decimals),
            assets=tuple(dict.fromkeys(symbols)) or registry_pool.assets,
            last_updated=datetime.fromtimestamp(now, timezone.utc),
        )

    async def _fetch_one(
        self, chain: str, pool: CurvePoolConfig
    ) -> CurvePoolSnapshot | FetchFailure:
        try:
            return await self.get_pool_data(chain, pool.pool_address)
        except ProviderError as e:
            logger.warning("[%s] Skipping pool %s: %s", chain, pool.name, e)
            return FetchFailure(chain=chain, key=pool.name, kind=e.kind, message=str(e))
        except Exception as e:
            logger.error("[%s] Unexpected error reading pool %s: %s", chain, pool.name, e)
            return FetchFailure(chain=chain, key=pool.name, kind=type(e).__name__, message=str(e))

    async def _fetch_pools(
        self, units: list[tuple[str, CurvePoolConfig]]
    ) -> FetchReport:
        outcomes = await asyncio.gather(*(self._fetch_one(c, p) for c, p in units))
        results = sorted(
            (o for o in outcomes if isinstance(o, CurvePoolSnapshot)),
            key=lambda s: s.boosted_apy,
            reverse=True,
        )
        failures = tuple(o for o in outcomes if isinstance(o, FetchFailure))
        return FetchReport(results=tuple(results), failures=failures)

    async def get_top_stable_pools(self, chain: str) -> FetchReport:
        await self.ensure_resolved(chain)
        return await self._fetch_pools([(chain, p) for p in self.activatable_pools(chain)])

    async def get_pools_by_assets(self, chain: str, assets: list[str]) -> FetchReport:
        await self.ensure_resolved(chain)
        pools = filter_pools_by_assets(self.activatable_pools(chain), assets)
        return await self._fetch_pools([(chain, p) for p in pools])

    async def fetch_data(self, chains: list[str], assets: list[str]) -> FetchReport:
        """Pools per chain matching the asset selection, else every activatable pool."""
        units: list[tuple[str, CurvePoolConfig]] = []
        for chain in chains:
            if not self.is_supported(chain):
                continue
            await self.ensure_resolved(chain)
            pools = filter_pools_by_assets(self.activatable_pools(chain), assets)
            if not pools:
                pools = self.activatable_pools(chain)
            logger.debug("[%s] Curve pools selected: %d", chain, len(pools))
            units.extend((chain, p) for p in pools)

        report = await self._fetch_pools(units)
        logger.info(
            "Curve fetch: %d pools, %d failures", len(report.results), len(report.failures)
        )
        return report
