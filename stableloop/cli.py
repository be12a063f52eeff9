"""Command-line interface for the stablecoin loop dashboard."""
from __future__ import annotations

import argparse
import asyncio
import math
import sys

from .config import load_config, validate_addresses
from .logging_setup import configure_logging
from .models import CurvePoolSnapshot, FetchReport, LoopPairRow, ReserveSnapshot
from .services import CalculatorReport, CalculatorRequest, Dashboard


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="stableloop",
        description="Stablecoin yield, loop and liquidation-risk dashboard",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    def add_selection(p: argparse.ArgumentParser) -> None:
        p.add_argument("--chain", action="append", dest="chains", help="Chain name (repeatable)")
        p.add_argument("--asset", action="append", dest="assets", help="Stablecoin (repeatable)")

    add_selection(sub.add_parser("reserves", help="Fetch Aave reserve snapshots"))
    add_selection(sub.add_parser("loops", help="Supply/borrow loop pairs"))

    pools_parser = sub.add_parser("pools", help="Fetch Curve pool snapshots")
    add_selection(pools_parser)
    pools_parser.add_argument("--polls", type=int, default=1, help="Number of polls (default: 1)")
    pools_parser.add_argument(
        "--interval", type=int, default=60, help="Seconds between polls (default: 60)"
    )

    calc = sub.add_parser("calc", help="Loop calculator with risk grid, fed by live reserves")
    calc.add_argument("--chain", default="ethereum")
    calc.add_argument("--deposit", default="USDC")
    calc.add_argument("--borrow", default="USDT")
    calc.add_argument(
        "--supply-apy", type=float, default=None, help="Decimal, e.g. 0.05 (default: live deposit reserve)"
    )
    calc.add_argument(
        "--borrow-apy", type=float, default=None, help="Decimal, e.g. 0.03 (default: live borrow reserve)"
    )
    target = calc.add_mutually_exclusive_group()
    target.add_argument("--ltv", type=float, default=None, help="LTV percent (0-100)")
    target.add_argument("--leverage", type=float, default=None, help="Target supply multiple")
    calc.add_argument("--loops", type=int, default=None)
    calc.add_argument("--principal", type=float, default=1000.0)

    watch = sub.add_parser("watch", help="Continuous polling loop")
    watch.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Poll interval in seconds (overrides config)",
    )

    sub.add_parser("validate", help="Check configured addresses")

    return parser


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _pct(decimal: float, digits: int = 2) -> str:
    return f"{decimal * 100:.{digits}f}%" if math.isfinite(decimal) else "n/a"


def _hf(value: float) -> str:
    return "∞" if math.isinf(value) else f"{value:.3f}"


def format_reserve(s: ReserveSnapshot) -> str:
    emode = s.emode_category if s.emode_category is not None else "-"
    return (
        f"{s.chain:<10} {s.asset:<5} supply {_pct(s.supply_apy):>7}  "
        f"borrow {_pct(s.borrow_apy):>7}  util {s.utilization:6.2f}%  "
        f"LTV {s.ltv:5.2f}  LT {s.liquidation_threshold:5.2f}  eMode {emode}"
    )


def format_loop_row(r: LoopPairRow) -> str:
    flag = "" if r.borrowable else "  (not borrowable)"
    return (
        f"{r.chain:<10} {r.supply_asset:>5} → {r.borrow_asset:<5} "
        f"spread {_pct(r.net_spread):>7}  util {r.utilization:6.2f}%  "
        f"caps {r.supply_cap_used_pct:5.1f}%/{r.borrow_cap_used_pct:5.1f}%  "
        f"eMode {r.emode_ltv:.0f}/{r.emode_lt:.0f}{flag}"
    )


def format_pool(p: CurvePoolSnapshot) -> str:
    return (
        f"{p.chain:<10} {p.name:<12} base {_pct(p.base_apy):>7}  "
        f"boosted {_pct(p.boosted_apy):>7}  TVL ${p.tvl / 10**18:,.0f}  "
        f"peg dev {_pct(p.peg_deviation, 3)}  [{', '.join(p.assets)}]"
    )


def format_failures(report: FetchReport) -> list[str]:
    return [f"  ! {f.chain}/{f.key}: {f.kind}: {f.message}" for f in report.failures]


def format_calculation(report: CalculatorReport) -> list[str]:
    loop = report.loop
    lines = [
        f"Mode: {report.risk_params.mode}  LTV {report.ltv_percent:.2f}%  "
        f"LT {report.risk_params.liquidation_threshold:.2f}%",
        f"Leverage: {loop.leverage_multiplier:.4f}x  "
        f"supplied {report.totals.total_supplied:,.2f}  borrowed {report.totals.total_borrowed:,.2f}",
        f"Gross {_pct(loop.gross_apy)}  cost {_pct(loop.borrow_cost)}  "
        f"net {_pct(loop.net_apy)}  spread {_pct(loop.spread_apy)}",
        f"Health factor: {_hf(report.health.health_factor)} ({report.health.risk_level})",
    ]
    lines.extend(f"Warning: {w.value}" for w in sorted(loop.warnings))
    for s in report.stress:
        note = f"  {s.liquidation_risk.warning_message}" if s.liquidation_risk.warning_message else ""
        lines.append(
            f"  depeg {s.direction:<4} {s.stress_percentage:4.1f}%  "
            f"HF {_hf(s.resulting_health_factor)} ({s.liquidation_risk.risk_level}){note}"
        )
    return lines


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _print_report(report: FetchReport, render) -> None:
    for item in report.results:
        print(render(item))
    for line in format_failures(report):
        print(line)


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)

    if args.command == "validate":
        result = validate_addresses(config)
        for line in result.warnings:
            print(f"  - {line}")
        print("OK" if not result.errors else f"{len(result.errors)} error(s)")
        return

    dashboard = Dashboard(config)

    if args.command == "reserves":
        _print_report(await dashboard.fetch_reserves(args.chains, args.assets), format_reserve)
    elif args.command == "loops":
        rows, report = await dashboard.build_loop_rows(args.chains, args.assets)
        for row in rows:
            print(format_loop_row(row))
        for line in format_failures(report):
            print(line)
    elif args.command == "pools":
        for i in range(max(1, args.polls)):
            if i:
                await asyncio.sleep(args.interval)
            _print_report(await dashboard.fetch_pools(args.chains, args.assets), format_pool)
    elif args.command == "calc":
        request = CalculatorRequest(
            chain=args.chain,
            deposit_asset=args.deposit,
            borrow_asset=args.borrow,
            supply_apy=args.supply_apy,
            borrow_apy=args.borrow_apy,
            loops=args.loops if args.loops is not None else config.calculator.default_loops,
            principal=args.principal,
            ltv_percent=args.ltv,
            target_leverage=args.leverage,
        )
        for line in format_calculation(await dashboard.calculate_live(request)):
            print(line)
    elif args.command == "watch":
        await dashboard.run_continuous(args.interval)
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(_run(args))
