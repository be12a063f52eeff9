"""Protocol interfaces for the stablecoin analytics engine."""
from .chain import ChainClient
from .pool_source import BoostRateSource, PoolAddressResolver, PoolDataSource
from .reserve_source import ReserveDataSource, ReserveReadStrategy

__all__ = [
    "BoostRateSource",
    "ChainClient",
    "PoolAddressResolver",
    "PoolDataSource",
    "ReserveDataSource",
    "ReserveReadStrategy",
]
