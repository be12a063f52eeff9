"""Convex boosted-APY source (Ethereum only, best effort)."""
import logging
import math
import ssl

import aiohttp
import certifi

from ...config import CurvePoolConfig
from ...errors import NetworkError

logger = logging.getLogger(__name__)

_APY_FIELDS = ("apyWeek", "apy", "apy_base")


def parse_boosted_apy(payload: dict) -> float | None:
    """First numeric APY field; values above 1 are percents and get divided by 100."""
    for field_name in _APY_FIELDS:
        value = payload.get(field_name)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
            return value / 100 if value > 1 else float(value)
    return None


class ConvexBoostSource:
    """Fetch a pool's boosted APY from a Convex-style HTTP API."""

    def __init__(self, api_base: str, timeout: int = 10) -> None:
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    async def fetch_boosted_apy(self, chain: str, pool: CurvePoolConfig) -> float | None:
        if chain != "ethereum" or not self.api_base or pool.convex_pool_id is None:
            return None

        url = f"{self.api_base}/api/curve/pools/{pool.convex_pool_id}"
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status != 200:
                        logger.warning(
                            "Convex API returned HTTP %s for %s", response.status, pool.name
                        )
                        return None
                    data = await response.json()
        except Exception as e:
            logger.warning("Convex API error: %s", NetworkError("convex", chain, e))
            return None

        return parse_boosted_apy(data if isinstance(data, dict) else {})
