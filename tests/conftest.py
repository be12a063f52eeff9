"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import pytest
from eth_abi import encode

from stableloop.config import (
    AaveMarketConfig,
    AppConfig,
    CalculatorConfig,
    ChainConfig,
    CurvePoolConfig,
    DashboardConfig,
    StablecoinConfig,
)
from stableloop.models import EModeCategory, ReserveSnapshot

USDC = "0xA0b86991C6218b36c1d19D4a2e9Eb0cE3606eB48"
USDT = "0xdAC17F958D2ee523a2206206994597C13D831ec7"
DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
AAVE_POOL = "0x87870Bca3F3fD6335C3F4ce8392D69350B4fA4E2"
AAVE_DATA_PROVIDER = "0x7B4EB56E7CD4b454BA8ff71E4518426369a138a3"
CURVE_3POOL = "0xbEbC44782C7dB0a1A60Cb6Fe97d0a7a59BAbE807"
CURVE_3POOL_LP = "0x6c3F90f043a72FA612cbac8115EE7e52BDe6E490"

FIXED_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def abi_hex(types: list[str], values: list[Any]) -> str:
    """ABI-encode values the way an eth_call result comes back."""
    return "0x" + encode(types, values).hex()


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_stablecoins() -> dict[str, StablecoinConfig]:
    return {
        "USDC": StablecoinConfig("USDC", "USD Coin", 6, {"ethereum": USDC}),
        "USDT": StablecoinConfig("USDT", "Tether USD", 6, {"ethereum": USDT}),
        "DAI": StablecoinConfig("DAI", "Dai Stablecoin", 18, {"ethereum": DAI}),
    }


@pytest.fixture()
def sample_curve_pool() -> CurvePoolConfig:
    return CurvePoolConfig(
        name="3pool",
        pool_address=CURVE_3POOL,
        lp_token_address=CURVE_3POOL_LP,
        convex_pool_id=9,
        assets=("USDC", "USDT", "DAI"),
    )


@pytest.fixture()
def sample_chain_config(sample_curve_pool: CurvePoolConfig) -> ChainConfig:
    return ChainConfig(
        chain_id=1,
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
        aave=AaveMarketConfig(
            pool=AAVE_POOL,
            data_provider=AAVE_DATA_PROVIDER,
            emode_categories=(EModeCategory(1, 93.0, 95.0, 1.0, "Stablecoins"),),
        ),
        curve_pools=(sample_curve_pool, CurvePoolConfig(name="placeholder", assets=("USDC",))),
    )


@pytest.fixture()
def sample_app_config(
    sample_chain_config: ChainConfig,
    sample_stablecoins: dict[str, StablecoinConfig],
) -> AppConfig:
    return AppConfig(
        dashboard=DashboardConfig(
            poll_interval_seconds=60,
            assets=("USDC", "USDT", "DAI"),
            chains=("ethereum",),
        ),
        chains={"ethereum": sample_chain_config},
        stablecoins=sample_stablecoins,
        calculator=CalculatorConfig(default_loops=3, max_ltv=90.0),
    )


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_snapshot() -> Callable[..., ReserveSnapshot]:
    def _make(asset: str = "USDC", **overrides: Any) -> ReserveSnapshot:
        fields: dict[str, Any] = dict(
            protocol="aave",
            chain="ethereum",
            asset=asset,
            supply_apy=0.05,
            borrow_apy=0.03,
            utilization=50.0,
            total_supply=1_000_000,
            total_borrow=500_000,
            supply_cap=2_000_000,
            borrow_cap=1_000_000,
            ltv=75.0,
            liquidation_threshold=78.0,
            reserve_factor=10.0,
            last_updated=FIXED_NOW,
            emode_category=1,
            borrowable=True,
        )
        fields.update(overrides)
        return ReserveSnapshot(**fields)

    return _make


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent(f"""\
    dashboard:
      poll_interval_seconds: 30
      assets: [USDC, USDT]
    chains:
      ethereum:
        chain_id: 1
        rpc_endpoints: ["https://rpc.example.com", ""]
        rpc_timeout: 7
        aave:
          pool: "{AAVE_POOL}"
          data_provider: "{AAVE_DATA_PROVIDER}"
          emode_categories:
            - {{id: 1, ltv: 93, liquidation_threshold: 95, liquidation_bonus: 1, label: Stablecoins}}
        curve_pools:
          - name: 3pool
            pool_address: "{CURVE_3POOL}"
            lp_token_address: "{CURVE_3POOL_LP}"
            convex_pool_id: 9
            assets: [USDC, USDT]
          - name: 2pool
            assets: [USDC]
    stablecoins:
      USDC:
        name: USD Coin
        decimals: 6
        addresses: {{ethereum: "{USDC}"}}
      USDT:
        name: Tether USD
        decimals: 6
        addresses: {{ethereum: "{USDT}"}}
    calculator:
      default_loops: 4
      max_ltv: 85
      stress_percentages: [1, 5]
    boost:
      convex_api_base: "https://convex.example.com"
    curve_api:
      base: "https://curve.example.com"
      timeout: 4
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
