"""Pure quantitative engine: no I/O, never raises on numeric input."""
from .fixed_point import (
    bps_to_percent,
    geometric_series_sum,
    percent_of_integers,
    ray_to_decimal,
)
from .leverage import (
    compute_totals,
    invert_leverage_to_ltv_percent,
    leverage_from_ltv_percent,
)
from .loop_pairs import build_loop_rows, get_cap_usage_percentages
from .loop_yield import calculate_net_spread, compute_loop_apy
from .risk import (
    assess_health_factor,
    classify_risk_level,
    derive_effective_risk_params,
    estimate_health_factor,
    run_depeg_stress,
)

__all__ = [
    "assess_health_factor",
    "bps_to_percent",
    "build_loop_rows",
    "calculate_net_spread",
    "classify_risk_level",
    "compute_loop_apy",
    "compute_totals",
    "derive_effective_risk_params",
    "estimate_health_factor",
    "geometric_series_sum",
    "get_cap_usage_percentages",
    "invert_leverage_to_ltv_percent",
    "leverage_from_ltv_percent",
    "percent_of_integers",
    "ray_to_decimal",
    "run_depeg_stress",
]
