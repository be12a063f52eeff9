"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import EModeCategory

logger = logging.getLogger(__name__)

DEFAULT_ASSETS: tuple[str, ...] = ("USDC", "USDT", "DAI")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DashboardConfig:
    poll_interval_seconds: int = 60
    assets: tuple[str, ...] = DEFAULT_ASSETS
    chains: tuple[str, ...] = ()


@dataclass(frozen=True)
class AaveMarketConfig:
    pool: str = ""
    data_provider: str = ""
    emode_categories: tuple[EModeCategory, ...] = ()


@dataclass(frozen=True)
class CurvePoolConfig:
    name: str = ""
    pool_address: str = ""
    lp_token_address: str = ""
    convex_pool_id: int | None = None
    assets: tuple[str, ...] = ()

    @property
    def activatable(self) -> bool:
        return bool(self.pool_address and self.lp_token_address)


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int = 0
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 10
    aave: AaveMarketConfig | None = None
    curve_pools: tuple[CurvePoolConfig, ...] = ()


@dataclass(frozen=True)
class StablecoinConfig:
    symbol: str = ""
    name: str = ""
    decimals: int = 18
    addresses: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CalculatorConfig:
    default_loops: int = 3
    max_ltv: float = 90.0
    stress_percentages: tuple[float, ...] = (0.5, 1.0, 2.0)


@dataclass(frozen=True)
class BoostConfig:
    convex_api_base: str = ""


@dataclass(frozen=True)
class CurveApiConfig:
    base: str = ""
    timeout: int = 10


@dataclass(frozen=True)
class AppConfig:
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    chains: dict[str, ChainConfig] = field(default_factory=dict)
    stablecoins: dict[str, StablecoinConfig] = field(default_factory=dict)
    calculator: CalculatorConfig = field(default_factory=CalculatorConfig)
    boost: BoostConfig = field(default_factory=BoostConfig)
    curve_api: CurveApiConfig = field(default_factory=CurveApiConfig)


@dataclass(frozen=True)
class ValidationResult:
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")
_HEX40_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_dashboard(raw: dict[str, Any]) -> DashboardConfig:
    return DashboardConfig(
        poll_interval_seconds=int(raw.get("poll_interval_seconds", 60)),
        assets=tuple(raw.get("assets", DEFAULT_ASSETS)),
        chains=tuple(raw.get("chains", [])),
    )


def _build_emode_categories(raw: list[dict[str, Any]]) -> tuple[EModeCategory, ...]:
    return tuple(
        EModeCategory(
            id=int(c.get("id", 0)),
            ltv=float(c.get("ltv", 0.0)),
            liquidation_threshold=float(c.get("liquidation_threshold", 0.0)),
            liquidation_bonus=float(c.get("liquidation_bonus", 0.0)),
            label=c.get("label", ""),
        )
        for c in raw
    )


def _build_aave(raw: dict[str, Any] | None) -> AaveMarketConfig | None:
    if not raw:
        return None
    return AaveMarketConfig(
        pool=raw.get("pool", ""),
        data_provider=raw.get("data_provider", ""),
        emode_categories=_build_emode_categories(raw.get("emode_categories", [])),
    )


def _build_curve_pools(raw: list[dict[str, Any]]) -> tuple[CurvePoolConfig, ...]:
    pools: list[CurvePoolConfig] = []
    for p in raw:
        pid = p.get("convex_pool_id")
        pools.append(
            CurvePoolConfig(
                name=p.get("name", ""),
                pool_address=p.get("pool_address") or "",
                lp_token_address=p.get("lp_token_address") or "",
                convex_pool_id=int(pid) if pid is not None else None,
                assets=tuple(p.get("assets", [])),
            )
        )
    return tuple(pools)


def _build_chains(raw: dict[str, Any]) -> dict[str, ChainConfig]:
    chains: dict[str, ChainConfig] = {}
    for name, cfg in raw.items():
        chains[name] = ChainConfig(
            chain_id=int(cfg.get("chain_id", 0)),
            rpc_endpoints=tuple(e for e in cfg.get("rpc_endpoints", []) if e),
            rpc_timeout=int(cfg.get("rpc_timeout", 10)),
            aave=_build_aave(cfg.get("aave")),
            curve_pools=_build_curve_pools(cfg.get("curve_pools", [])),
        )
    return chains


def _build_stablecoins(raw: dict[str, Any]) -> dict[str, StablecoinConfig]:
    coins: dict[str, StablecoinConfig] = {}
    for symbol, cfg in raw.items():
        coins[symbol] = StablecoinConfig(
            symbol=symbol,
            name=cfg.get("name", symbol),
            decimals=int(cfg.get("decimals", 18)),
            addresses={k: v for k, v in cfg.get("addresses", {}).items() if v},
        )
    return coins


def _build_calculator(raw: dict[str, Any]) -> CalculatorConfig:
    return CalculatorConfig(
        default_loops=int(raw.get("default_loops", 3)),
        max_ltv=float(raw.get("max_ltv", 90.0)),
        stress_percentages=tuple(
            float(p) for p in raw.get("stress_percentages", (0.5, 1.0, 2.0))
        ),
    )


def _build_boost(raw: dict[str, Any]) -> BoostConfig:
    return BoostConfig(convex_api_base=raw.get("convex_api_base", "") or "")


def _build_curve_api(raw: dict[str, Any]) -> CurveApiConfig:
    return CurveApiConfig(
        base=raw.get("base", "") or "",
        timeout=int(raw.get("timeout", 10)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from the package directory).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    chains = _build_chains(raw.get("chains", {}))
    dashboard = _build_dashboard(raw.get("dashboard", {}))
    if not dashboard.chains:
        dashboard = DashboardConfig(
            poll_interval_seconds=dashboard.poll_interval_seconds,
            assets=dashboard.assets,
            chains=tuple(chains),
        )

    cfg = AppConfig(
        dashboard=dashboard,
        chains=chains,
        stablecoins=_build_stablecoins(raw.get("stablecoins", {})),
        calculator=_build_calculator(raw.get("calculator", {})),
        boost=_build_boost(raw.get("boost", {})),
        curve_api=_build_curve_api(raw.get("curve_api", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on structurally invalid configuration."""
    if not cfg.chains:
        raise ValueError("At least one chain must be configured")

    for chain in cfg.dashboard.chains:
        if chain not in cfg.chains:
            raise ValueError(f"Dashboard references unknown chain '{chain}'")

    for asset in cfg.dashboard.assets:
        if asset not in cfg.stablecoins:
            raise ValueError(f"Dashboard references unknown stablecoin '{asset}'")

    for name, chain in cfg.chains.items():
        for pool in chain.curve_pools:
            for asset in pool.assets:
                if asset not in cfg.stablecoins:
                    raise ValueError(
                        f"Curve pool '{pool.name}' on '{name}' references "
                        f"unknown stablecoin '{asset}'"
                    )


def validate_addresses(cfg: AppConfig, strict: bool = False) -> ValidationResult:
    """Check contract and token addresses; raise in strict mode, else log warnings."""
    errors: list[str] = []
    warnings: list[str] = []

    for name, chain in cfg.chains.items():
        if not chain.rpc_endpoints:
            warnings.append(f"No RPC endpoints configured for chain {name}")
        if chain.aave is not None:
            for label, addr in (
                ("pool", chain.aave.pool),
                ("data_provider", chain.aave.data_provider),
            ):
                if not _HEX40_RE.match(addr):
                    errors.append(f"Invalid Aave {label} for chain {name}: {addr!r}")
        for pool in chain.curve_pools:
            for label, addr in (
                ("pool_address", pool.pool_address),
                ("lp_token_address", pool.lp_token_address),
            ):
                if not addr:
                    warnings.append(
                        f"Curve pool '{pool.name}' on {name} has no {label}; skipped"
                    )
                elif not _HEX40_RE.match(addr):
                    errors.append(
                        f"Invalid {label} for Curve pool '{pool.name}' on {name}: {addr!r}"
                    )

    for symbol, coin in cfg.stablecoins.items():
        for name in cfg.chains:
            addr = coin.addresses.get(name)
            if not addr:
                warnings.append(f"Missing {symbol} address on chain {name}")
            elif not _HEX40_RE.match(addr):
                errors.append(f"Invalid {symbol} address on chain {name}: {addr!r}")

    if errors:
        detail = "\n".join(f" - {e}" for e in errors)
        msg = f"Configuration validation failed:\n{detail}"
        if strict:
            raise ValueError(msg)
        logger.warning(msg)
        warnings.extend(errors)
    elif warnings:
        logger.warning(
            "Configuration warnings:\n%s", "\n".join(f" - {w}" for w in warnings)
        )

    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))
