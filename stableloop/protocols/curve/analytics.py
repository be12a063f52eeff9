"""Pure Curve pool analytics plus the virtual-price observation cache."""
from __future__ import annotations

import math
import threading
from collections.abc import Mapping, Sequence

from ...calculations.fixed_point import WAD, clamp, div_trunc, int_ratio, to_int
from ...config import StablecoinConfig
from ...models import PoolObservation

SECONDS_PER_YEAR = 365 * 24 * 3600
BASE_APY_MIN = -0.2
BASE_APY_MAX = 0.5
_RATIO_SCALE = 10**9


def compute_tvl(lp_total_supply: int, virtual_price: int) -> int:
    """USD-notional TVL scaled by 1e18: ``supply * virtual_price / 1e18``, truncated."""
    return div_trunc(to_int(lp_total_supply) * to_int(virtual_price), WAD)


def compute_peg_deviation(
    coin_balances: Sequence[int], coin_decimals: Sequence[int]
) -> float:
    """Largest absolute gap between any coin's balance share and the 1/N target."""
    normalized: list[float] = []
    for balance, decimals in zip(coin_balances, coin_decimals):
        v = int_ratio(to_int(balance), 10 ** to_int(decimals))
        if math.isfinite(v):
            normalized.append(v)

    if not normalized:
        return 0.0
    total = sum(normalized)
    if not math.isfinite(total) or total <= 0:
        return 0.0

    target = 1 / len(normalized)
    return max(abs(v / total - target) for v in normalized)


def price_change_ratio(current: int, previous: int) -> float:
    """``(current - previous) / previous`` via 1e9-scaled integer division."""
    if previous == 0:
        return 0.0
    return int_ratio(div_trunc((current - previous) * _RATIO_SCALE, previous), _RATIO_SCALE)


def compute_base_apy(
    current_virtual_price: int,
    previous: PoolObservation | None,
    now: int,
) -> float:
    """Annualized virtual-price growth since ``previous``, clamped to [-0.2, 0.5].

    Without a previous observation, or with no elapsed time, the result is 0.
    """
    if previous is None or now <= previous.timestamp:
        return 0.0
    ratio = price_change_ratio(to_int(current_virtual_price), previous.virtual_price)
    apr = ratio * (SECONDS_PER_YEAR / (now - previous.timestamp))
    if math.isnan(apr):
        return 0.0
    return clamp(apr, BASE_APY_MIN, BASE_APY_MAX)


def token_to_stable_asset(
    chain: str, token_address: str, stablecoins: Mapping[str, StablecoinConfig]
) -> str | None:
    """Exact (case-insensitive) address match against the chain's stablecoin table."""
    wanted = token_address.lower()
    for symbol, coin in stablecoins.items():
        addr = coin.addresses.get(chain)
        if addr and addr.lower() == wanted:
            return symbol
    return None


def observation_key(chain: str, pool_address: str) -> str:
    return f"{chain}-{pool_address.lower()}"


class ObservationCache:
    """Last virtual-price observation per (chain, pool).

    Entries never expire; the owner decides when to ``clear``. ``swap`` is the
    read-then-update used by pollers and is serialized per key.
    """

    def __init__(self, seed: Mapping[str, PoolObservation] | None = None) -> None:
        self._entries: dict[str, PoolObservation] = dict(seed or {})
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def get(self, key: str) -> PoolObservation | None:
        return self._entries.get(key)

    def set(self, key: str, observation: PoolObservation) -> None:
        with self._lock_for(key):
            self._entries[key] = observation

    def swap(self, key: str, observation: PoolObservation) -> PoolObservation | None:
        """Store ``observation`` and return the one it replaced."""
        with self._lock_for(key):
            previous = self._entries.get(key)
            self._entries[key] = observation
            return previous

    def clear(self) -> None:
        with self._guard:
            self._entries.clear()
            self._locks.clear()

    def __len__(self) -> int:
        return len(self._entries)


def record_base_apy(
    cache: ObservationCache,
    chain: str,
    pool_address: str,
    virtual_price: int,
    now: int,
) -> float:
    """Compute base APY against the retained observation and retain the new one."""
    previous = cache.swap(
        observation_key(chain, pool_address),
        PoolObservation(virtual_price=to_int(virtual_price), timestamp=now),
    )
    return compute_base_apy(virtual_price, previous, now)
