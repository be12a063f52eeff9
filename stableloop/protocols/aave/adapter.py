"""Aave v3 reserve data source: strategy fallback and per-unit fan-out."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from ...config import ChainConfig, StablecoinConfig
from ...errors import AssetNotListedError, ProviderError, SuspectReserveDataError
from ...interfaces.chain import ChainClient
from ...interfaces.reserve_source import ReserveReadStrategy
from ...models import EModeCategory, FetchFailure, FetchReport, ReserveSnapshot
from . import parser
from .strategies import DEFAULT_STRATEGIES, PROVIDER

logger = logging.getLogger(__name__)

STABLECOIN_EMODE = EModeCategory(
    id=1, ltv=93.0, liquidation_threshold=95.0, liquidation_bonus=1.0, label="Stablecoins"
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AaveV3Adapter:
    """Read Aave v3 reserves across chains into canonical snapshots."""

    def __init__(
        self,
        clients: dict[str, ChainClient],
        chains: dict[str, ChainConfig],
        stablecoins: dict[str, StablecoinConfig],
        strategies: Sequence[ReserveReadStrategy] = DEFAULT_STRATEGIES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._clients = clients
        self._chains = chains
        self._stablecoins = stablecoins
        self._strategies = tuple(strategies)
        self._clock = clock

    @property
    def protocol_name(self) -> str:
        return PROVIDER

    def is_supported(self, chain: str) -> bool:
        cfg = self._chains.get(chain)
        return chain in self._clients and cfg is not None and cfg.aave is not None

    def _asset_address(self, chain: str, asset: str) -> str:
        coin = self._stablecoins.get(asset)
        address = coin.addresses.get(chain) if coin else None
        if not address:
            raise AssetNotListedError(PROVIDER, chain, asset, "no token address configured")
        return address

    async def get_reserve_data(self, chain: str, asset: str) -> ReserveSnapshot:
        """Fetch one reserve, trying each read strategy in order.

        A strategy that fails or returns a suspect all-zero read hands over to the
        next one. ``AssetNotListedError`` stops the chain of strategies at once.
        """
        if not self.is_supported(chain):
            raise ProviderError(f"No Aave market configured for chain {chain}", PROVIDER, chain)

        client = self._clients[chain]
        market = self._chains[chain].aave
        asset_address = self._asset_address(chain, asset)

        errors: list[ProviderError] = []
        for strategy in self._strategies:
            try:
                raw = await strategy.read(client, market, asset, asset_address)
            except AssetNotListedError:
                raise
            except ProviderError as e:
                logger.warning(
                    "[%s] %s: strategy %s failed: %s", chain, asset, strategy.name, e
                )
                errors.append(e)
                continue

            if parser.is_suspect_response(raw):
                logger.warning(
                    "[%s] %s: strategy %s returned all-zero data, trying next",
                    chain, asset, strategy.name,
                )
                errors.append(SuspectReserveDataError(PROVIDER, chain, asset, strategy.name))
                continue

            logger.info("[%s] %s reserve read via %s", chain, asset, strategy.name)
            return parser.normalize_reserve(
                raw,
                protocol=PROVIDER,
                chain=chain,
                asset=asset,
                timestamp=self._clock(),
            )

        if errors and all(isinstance(e, SuspectReserveDataError) for e in errors):
            raise errors[-1]
        raise ProviderError(
            f"All reserve strategies failed for {asset} on chain {chain}: "
            + "; ".join(str(e) for e in errors),
            PROVIDER,
            chain,
            errors[-1] if errors else None,
        )

    async def _fetch_one(self, chain: str, asset: str) -> ReserveSnapshot | FetchFailure:
        try:
            return await self.get_reserve_data(chain, asset)
        except AssetNotListedError as e:
            logger.info("[%s] Skipping %s: %s", chain, asset, e)
            return FetchFailure(chain=chain, key=asset, kind=e.kind, message=str(e))
        except ProviderError as e:
            logger.warning("[%s] Failed to fetch %s: %s", chain, asset, e)
            return FetchFailure(chain=chain, key=asset, kind=e.kind, message=str(e))
        except Exception as e:
            logger.error("[%s] Unexpected error fetching %s: %s", chain, asset, e)
            return FetchFailure(chain=chain, key=asset, kind=type(e).__name__, message=str(e))

    async def fetch_data(self, chains: list[str], assets: list[str]) -> FetchReport:
        """Fetch every (chain, asset) pair independently; failures never abort siblings."""
        units = []
        for chain in chains:
            if not self.is_supported(chain):
                logger.debug("Aave not supported on chain %s, skipping", chain)
                continue
            units.extend((chain, asset) for asset in assets)

        outcomes = await asyncio.gather(*(self._fetch_one(c, a) for c, a in units))

        results = tuple(o for o in outcomes if isinstance(o, ReserveSnapshot))
        failures = tuple(o for o in outcomes if isinstance(o, FetchFailure))
        logger.info(
            "Aave fetch: %d reserves, %d failures across %d chains",
            len(results), len(failures), len({c for c, _ in units}),
        )
        return FetchReport(results=results, failures=failures)

    async def get_emode_categories(self, chain: str) -> list[EModeCategory]:
        """Configured E-Mode categories, defaulting to the stablecoin category."""
        cfg = self._chains.get(chain)
        if cfg is None or cfg.aave is None:
            return []
        return list(cfg.aave.emode_categories) or [STABLECOIN_EMODE]

    async def get_reserves_list(self, chain: str) -> list[str]:
        if not self.is_supported(chain):
            raise ProviderError(f"No Aave market configured for chain {chain}", PROVIDER, chain)
        (reserves,) = await self._clients[chain].call_function(
            self._chains[chain].aave.pool, "getReservesList()", (), ("address[]",)
        )
        return list(reserves)
