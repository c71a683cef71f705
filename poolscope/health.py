"""Rule-based pool health evaluation."""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from .layouts import layout_for
from .models import ParsedPool, PoolHealth, PoolReserves, PoolVariant

MIN_RESERVE_RAW = 100  # smallest units
MIN_DISPLAY_RESERVE = Decimal("0.01")
HIGH_FEE_PERCENT = Decimal(5)

EMPTY_RESERVE_ISSUES = {
    PoolVariant.BONDING_CURVE: ("No SOL liquidity", "No token liquidity"),
}


def evaluate_health(pool: ParsedPool, reserves: Optional[PoolReserves] = None) -> PoolHealth:
    """Apply every rule independently; reserve rules are skipped without reserves."""
    layout = layout_for(pool.variant)
    issues: List[str] = []
    warnings: List[str] = []

    status_text = layout.status_text(pool.status_code)
    if pool.status_code not in layout.active_statuses:
        issues.append(layout.status_issues.get(pool.status_code, f"Pool status is {status_text}"))

    if layout.tracks_liquidity and pool.liquidity == 0:
        issues.append("Pool liquidity is zero")

    if layout.lp_bearing and pool.lp_supply == 0:
        issues.append("Zero LP supply - pool might be drained or not initialized")

    fee_percent = pool.fee_percent
    if fee_percent > HIGH_FEE_PERCENT:
        warnings.append(f"High swap fee: {fee_percent:.2f}% (standard is 0.25%)")

    if reserves is not None:
        empty_labels = EMPTY_RESERVE_ISSUES.get(pool.variant)
        if empty_labels:
            if reserves.token_a_raw == 0:
                issues.append(empty_labels[0])
            if reserves.token_b_raw == 0:
                issues.append(empty_labels[1])
        if reserves.token_a_raw < MIN_RESERVE_RAW:
            issues.append(f"Very low Token A reserve: {reserves.token_a_raw}")
        if reserves.token_b_raw < MIN_RESERVE_RAW:
            issues.append(f"Very low Token B reserve: {reserves.token_b_raw}")
        if reserves.token_a_amount < MIN_DISPLAY_RESERVE or reserves.token_b_amount < MIN_DISPLAY_RESERVE:
            warnings.append("Pool has very low liquidity on one or both sides")

    return PoolHealth(
        is_healthy=not issues and pool.status_code == layout.canonical_status,
        issues=tuple(issues),
        warnings=tuple(warnings),
        status_text=status_text,
    )
