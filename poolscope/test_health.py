"""Tests for pool health rules."""
from dataclasses import replace

import pytest

from poolscope.decoders import decode
from poolscope.detector import detect
from poolscope.health import evaluate_health
from poolscope.models import PoolReserves

HEALTHY_RESERVES = PoolReserves(50 * 10**9, 7_000 * 10**6, 9, 6)


@pytest.fixture
def v4_pool(v4_fixture):
    return decode(detect(v4_fixture), v4_fixture)


def test_active_v4_is_healthy(v4_pool):
    health = evaluate_health(v4_pool, HEALTHY_RESERVES)
    assert health.is_healthy
    assert health.issues == ()
    assert health.warnings == ()
    assert health.status_text == "Active"


@pytest.mark.parametrize(
    "status,text,issue",
    [
        (0, "Uninitialized", "Pool is uninitialized"),
        (6, "Disabled", "Pool is disabled by authority"),
    ],
)
def test_inactive_status_is_an_issue(v4_pool, status, text, issue):
    health = evaluate_health(replace(v4_pool, status_code=status), HEALTHY_RESERVES)
    assert not health.is_healthy
    assert health.status_text == text
    assert issue in health.issues


def test_non_canonical_active_status_is_not_healthy(v4_pool):
    health = evaluate_health(replace(v4_pool, status_code=3), HEALTHY_RESERVES)
    assert health.issues == ()
    assert health.status_text == "Status 3"
    assert not health.is_healthy


def test_reserve_below_floor_is_an_issue(v4_pool):
    health = evaluate_health(v4_pool, PoolReserves(99, 7_000 * 10**6, 9, 6))
    assert "Very low Token A reserve: 99" in health.issues
    assert "Pool has very low liquidity on one or both sides" in health.warnings
    assert not health.is_healthy


def test_low_display_liquidity_is_only_a_warning(v4_pool):
    health = evaluate_health(v4_pool, PoolReserves(5_000_000, 7_000 * 10**6, 9, 6))
    assert health.issues == ()
    assert health.warnings == ("Pool has very low liquidity on one or both sides",)
    assert health.is_healthy


def test_zero_lp_supply_flags_lp_pools_only(v4_pool, dlmm_fixture):
    health = evaluate_health(replace(v4_pool, lp_supply=0), HEALTHY_RESERVES)
    assert "Zero LP supply - pool might be drained or not initialized" in health.issues

    dlmm_pool = replace(decode(detect(dlmm_fixture), dlmm_fixture), lp_supply=0)
    dlmm_health = evaluate_health(dlmm_pool, PoolReserves(10**9, 10**9, 6, 6))
    assert not any("LP supply" in issue for issue in dlmm_health.issues)


def test_high_fee_warns(v4_pool):
    health = evaluate_health(replace(v4_pool, fee_numerator=600), HEALTHY_RESERVES)
    assert health.warnings == ("High swap fee: 6.00% (standard is 0.25%)",)
    assert health.is_healthy


def test_fee_of_exactly_five_percent_does_not_warn(v4_pool):
    health = evaluate_health(replace(v4_pool, fee_numerator=500), HEALTHY_RESERVES)
    assert health.warnings == ()


def test_reserve_rules_skipped_without_reserves(v4_pool):
    health = evaluate_health(v4_pool)
    assert health.is_healthy


def test_concentrated_pool_with_no_liquidity(whirlpool_fixture):
    pool = decode(detect(whirlpool_fixture), whirlpool_fixture)
    health = evaluate_health(replace(pool, liquidity=0, lp_supply=0), PoolReserves(10**9, 10**9, 9, 6))
    assert health.issues == ("Pool liquidity is zero",)
    assert health.status_text == "Active"


def test_completed_bonding_curve(builders):
    data = builders["BondingCurve"](complete=True, real_sol_reserves=0)
    pool = decode(detect(data), data)
    health = evaluate_health(pool, PoolReserves(0, 10**12, 9, 6))
    assert health.status_text == "Complete"
    assert "Bonding curve complete - token migrated to Raydium" in health.issues
    assert "No SOL liquidity" in health.issues
    assert not health.is_healthy


def test_active_bonding_curve_is_healthy(bonding_curve_fixture):
    pool = decode(detect(bonding_curve_fixture), bonding_curve_fixture)
    health = evaluate_health(pool, PoolReserves(5 * 10**9, 7 * 10**14, 9, 6))
    assert health.is_healthy
    assert health.status_text == "Active"
