"""Pool data source: per-(chain, pool) AMM reads."""
from collections.abc import Mapping, Sequence
from typing import Protocol

from ..config import CurvePoolConfig, StablecoinConfig
from ..models import CurvePoolSnapshot, FetchReport


class PoolDataSource(Protocol):
    """Abstract interface for fetching stable pool snapshots."""

    async def get_pool_data(self, chain: str, pool_address: str) -> CurvePoolSnapshot: ...

    async def fetch_data(self, chains: list[str], assets: list[str]) -> FetchReport: ...


class BoostRateSource(Protocol):
    """Optional external source of a boosted APY for a pool."""

    async def fetch_boosted_apy(self, chain: str, pool: CurvePoolConfig) -> float | None: ...


class PoolAddressResolver(Protocol):
    """Fills in pool and LP token addresses missing from configuration."""

    async def resolve(
        self,
        chain: str,
        pools: Sequence[CurvePoolConfig],
        stablecoins: Mapping[str, StablecoinConfig],
    ) -> tuple[CurvePoolConfig, ...] | None: ...
