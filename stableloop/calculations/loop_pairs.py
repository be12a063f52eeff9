"""Supply/borrow pair rows built from per-chain reserve snapshots."""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from ..models import EModeCategory, LoopPairRow, ReserveSnapshot
from .fixed_point import percent_of_integers


def supply_cap_used_pct(total_supply: int, supply_cap: int) -> float:
    return percent_of_integers(total_supply, supply_cap)


def borrow_cap_used_pct(total_borrow: int, borrow_cap: int) -> float:
    return percent_of_integers(total_borrow, borrow_cap)


def get_cap_usage_percentages(
    total_supply: int, total_borrow: int, supply_cap: int, borrow_cap: int
) -> tuple[float, float]:
    """(supply cap used %, borrow cap used %); a zero cap reports 0."""
    return (
        supply_cap_used_pct(total_supply, supply_cap),
        borrow_cap_used_pct(total_borrow, borrow_cap),
    )


def _is_borrowable(borrow: ReserveSnapshot) -> bool:
    if borrow.borrowable is not None:
        return borrow.borrowable
    return borrow.borrow_cap > 0 and borrow.borrow_apy >= 0


def build_pair_row(
    supply: ReserveSnapshot,
    borrow: ReserveSnapshot,
    categories: Sequence[EModeCategory] = (),
) -> LoopPairRow:
    """Combine the supply leg of one snapshot with the borrow leg of another.

    Utilization comes from the borrow leg. E-Mode LTV/LT come from the shared
    category when both legs carry the same id, else from the supply leg.
    """
    shared_id = (
        supply.emode_category
        if supply.emode_category and supply.emode_category == borrow.emode_category
        else None
    )
    shared = next((c for c in categories if c.id == shared_id), None)

    supply_used, borrow_used = get_cap_usage_percentages(
        supply.total_supply, borrow.total_borrow, supply.supply_cap, borrow.borrow_cap
    )

    return LoopPairRow(
        chain=supply.chain,
        protocol=supply.protocol,
        supply_asset=supply.asset,
        borrow_asset=borrow.asset,
        supply_apy=supply.supply_apy,
        borrow_apy=borrow.borrow_apy,
        net_spread=supply.supply_apy - borrow.borrow_apy,
        utilization=borrow.utilization,
        supply_cap_used_pct=supply_used,
        borrow_cap_used_pct=borrow_used,
        emode_ltv=shared.ltv if shared else supply.ltv,
        emode_lt=shared.liquidation_threshold if shared else supply.liquidation_threshold,
        emode_category_id=shared_id,
        borrowable=_is_borrowable(borrow),
        last_updated=max(supply.last_updated, borrow.last_updated),
    )


def build_loop_rows(
    snapshots: Iterable[ReserveSnapshot],
    emode_by_chain: Mapping[str, Sequence[EModeCategory]],
    selected_assets: Sequence[str],
) -> list[LoopPairRow]:
    """Full supply x borrow cross product per chain, same-asset pairs included.

    Sorted by net spread descending, then utilization ascending.
    """
    by_chain: dict[str, dict[str, ReserveSnapshot]] = {}
    for snap in snapshots:
        by_chain.setdefault(snap.chain, {})[snap.asset] = snap

    rows: list[LoopPairRow] = []
    for chain, assets_map in by_chain.items():
        assets = [a for a in selected_assets if a in assets_map]
        categories = emode_by_chain.get(chain, ())
        for supply_asset in assets:
            for borrow_asset in assets:
                rows.append(
                    build_pair_row(
                        assets_map[supply_asset], assets_map[borrow_asset], categories
                    )
                )

    rows.sort(key=lambda r: (-r.net_spread, r.utilization))
    return rows
