"""Reserve data source: per-(chain, asset) lending market reads."""
from typing import Protocol

from ..config import AaveMarketConfig
from ..models import EModeCategory, FetchReport, RawReserveData, ReserveSnapshot
from .chain import ChainClient


class ReserveReadStrategy(Protocol):
    """One way of reading a raw reserve; strategies are tried in order."""

    @property
    def name(self) -> str: ...

    async def read(
        self,
        client: ChainClient,
        market: AaveMarketConfig,
        asset: str,
        asset_address: str,
    ) -> RawReserveData: ...


class ReserveDataSource(Protocol):
    """Abstract interface for fetching normalized reserves from a lending protocol."""

    @property
    def protocol_name(self) -> str: ...

    async def get_reserve_data(self, chain: str, asset: str) -> ReserveSnapshot: ...

    async def get_emode_categories(self, chain: str) -> list[EModeCategory]: ...

    async def fetch_data(self, chains: list[str], assets: list[str]) -> FetchReport: ...
