"""Fill missing Curve pool/LP addresses from the public Curve pools API."""
from __future__ import annotations

import logging
import ssl
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

import aiohttp
import certifi

from ...chains.evm.abi import same_address
from ...config import CurvePoolConfig, StablecoinConfig
from ...errors import NetworkError

logger = logging.getLogger(__name__)

API_NETWORKS = {
    "ethereum": "main",
    "arbitrum": "arbitrum",
    "optimism": "optimism",
    "polygon": "polygon",
}

# Bridged USDC.e, which most L2 Curve pools still hold
STABLE_ALIASES: dict[str, dict[str, tuple[str, ...]]] = {
    "arbitrum": {"USDC": ("0xFF970A61A04b1Ca14834A43f5dE4533eBDDB5CC8",)},
    "optimism": {"USDC": ("0x7F5c764cbc14f9669b88837ca1490cca17cf1a57",)},
}


def _name(api_pool: Mapping[str, Any]) -> str:
    return str(api_pool.get("name") or "").lower()


def detect_assets(
    chain: str,
    coin_addresses: Sequence[str],
    stablecoins: Mapping[str, StablecoinConfig],
) -> set[str]:
    """Stablecoin symbols present among ``coin_addresses``, aliases included."""
    aliases = STABLE_ALIASES.get(chain, {})
    found: set[str] = set()
    for symbol, coin in stablecoins.items():
        candidates = [a for a in (coin.addresses.get(chain),) if a]
        candidates.extend(aliases.get(symbol, ()))
        if any(same_address(c, a) for c in coin_addresses for a in candidates):
            found.add(symbol)
    return found


def matches_pool(
    chain: str,
    api_pool: Mapping[str, Any],
    item: CurvePoolConfig,
    stablecoins: Mapping[str, StablecoinConfig],
) -> bool:
    """Does an API pool hold every asset the configured entry lists?

    Polygon Aave pools hold aTokens, so a three-asset entry there also matches an
    ``aave`` name; two-asset entries also match a ``2pool`` name.
    """
    coins = api_pool.get("coinsAddresses") or []
    if not coins:
        return False
    if set(item.assets) <= detect_assets(chain, coins, stablecoins):
        return True

    name = _name(api_pool)
    if chain == "polygon" and len(item.assets) == 3 and "aave" in name:
        return True
    return len(item.assets) == 2 and "2pool" in name


def _usd_total(api_pool: Mapping[str, Any]) -> float:
    value = api_pool.get("usdTotal")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return -1.0


def select_pool(
    chain: str,
    api_pools: Sequence[Mapping[str, Any]],
    item: CurvePoolConfig,
    stablecoins: Mapping[str, StablecoinConfig],
) -> Mapping[str, Any] | None:
    """Highest-``usdTotal`` API pool matching ``item``, or None."""
    candidates = [p for p in api_pools if matches_pool(chain, p, item, stablecoins)]

    if chain == "polygon" and len(item.assets) == 3:
        with_aave = [c for c in candidates if "aave" in _name(c)]
        if with_aave:
            candidates = with_aave

    if not candidates and len(item.assets) == 2:
        candidates = [p for p in api_pools if "2pool" in _name(p)]

    if not candidates:
        return None
    # First of equal totals wins
    best = candidates[0]
    for pool in candidates[1:]:
        if _usd_total(pool) > _usd_total(best):
            best = pool
    return best


def resolve_pools(
    chain: str,
    pools: Sequence[CurvePoolConfig],
    api_pools: Sequence[Mapping[str, Any]],
    stablecoins: Mapping[str, StablecoinConfig],
) -> tuple[CurvePoolConfig, ...]:
    """Copies of ``pools`` with missing addresses filled in from ``api_pools``.

    Entries that are already activatable, or that match nothing, come back unchanged.
    """
    resolved: list[CurvePoolConfig] = []
    for item in pools:
        selected = None if item.activatable else select_pool(chain, api_pools, item, stablecoins)
        if selected is None:
            resolved.append(item)
            continue
        resolved.append(
            replace(
                item,
                pool_address=item.pool_address or str(selected.get("address") or ""),
                lp_token_address=item.lp_token_address or str(selected.get("lpTokenAddress") or ""),
            )
        )
        logger.info(
            "[%s] Resolved Curve pool %s -> %s", chain, item.name, resolved[-1].pool_address
        )
    return tuple(resolved)


class CurvePoolResolver:
    """Look up pool addresses via ``{base}/api/getPools/{network}/main``."""

    def __init__(self, api_base: str, timeout: int = 10) -> None:
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    async def fetch_pool_data(self, chain: str) -> list[dict[str, Any]]:
        """``data.poolData`` for the chain's network; empty on any failure."""
        network = API_NETWORKS.get(chain)
        if network is None or not self.api_base:
            return []

        url = f"{self.api_base}/api/getPools/{network}/main"
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    # Some error statuses still carry a usable body
                    try:
                        data = await response.json(content_type=None)
                    except ValueError:
                        logger.warning("Curve API returned HTTP %s for %s", response.status, chain)
                        return []
        except Exception as e:
            logger.warning("Curve API error: %s", NetworkError("curve-api", chain, e))
            return []

        inner = data.get("data") if isinstance(data, dict) else None
        pools = inner.get("poolData") if isinstance(inner, dict) else None
        if not isinstance(pools, list):
            logger.warning("Curve API returned no poolData for %s", chain)
            return []
        logger.debug("Curve API: %d pools for %s", len(pools), chain)
        return [p for p in pools if isinstance(p, dict)]

    async def resolve(
        self,
        chain: str,
        pools: Sequence[CurvePoolConfig],
        stablecoins: Mapping[str, StablecoinConfig],
    ) -> tuple[CurvePoolConfig, ...] | None:
        """Resolved copies of ``pools``, or None when the API gave nothing to match."""
        api_pools = await self.fetch_pool_data(chain)
        if not api_pools:
            return None
        return resolve_pools(chain, pools, api_pools, stablecoins)
