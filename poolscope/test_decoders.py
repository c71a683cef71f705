"""Tests for the per-protocol decoders."""
import json
from decimal import Decimal

import pytest

from poolscope.decoders import DECODERS, decode, safe_decode
from poolscope.detector import detect
from poolscope.errors import DecodeError, StructuralValidationFailure, TruncatedAccountData, UnrecognizedStructure
from poolscope.layouts import REGISTRY
from poolscope.models import NOT_APPLICABLE, Confidence, DetectionResult, PoolVariant, to_serializable


def detection_for(variant):
    return DetectionResult(variant, 0, None, Confidence.HIGH, "test")


def test_v4_round_trip_extracts_known_mints(v4_fixture, addresses):
    result = detect(v4_fixture)
    assert (result.variant, result.confidence) == (PoolVariant.V4, Confidence.HIGH)

    pool = decode(result, v4_fixture)
    assert pool.token_a_mint == addresses.wsol
    assert pool.token_b_mint == addresses.usdc
    assert pool.token_a_vault == addresses.vault_a
    assert pool.token_b_vault == addresses.vault_b
    assert pool.lp_mint == addresses.lp_mint
    assert pool.lp_supply == 1_000_000_000
    assert (pool.token_a_decimals, pool.token_b_decimals) == (9, 6)
    assert (pool.fee_numerator, pool.fee_denominator) == (25, 10_000)
    assert pool.fee_percent == Decimal("0.25")
    assert pool.status_code == 1
    assert pool.has_lp_token


def test_v4_missing_fee_falls_back_to_standard(builders):
    pool = DECODERS[PoolVariant.V4].parse(builders["V4"](swap_fee_numerator=0, swap_fee_denominator=0))
    assert (pool.fee_numerator, pool.fee_denominator) == (25, 10_000)


def test_v4_decodes_drifted_account(builders):
    data = builders["V4"](size=745)
    result = detect(data)
    assert result.confidence is Confidence.MEDIUM
    assert decode(result, data).token_b_mint == "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def test_v4_implausible_decimals_fail_validation(builders):
    with pytest.raises(StructuralValidationFailure):
        DECODERS[PoolVariant.V4].parse(builders["V4"](base_decimal=2**40))


def test_clmm_uses_sentinels(clmm_fixture, addresses):
    pool = decode(detect(clmm_fixture), clmm_fixture)
    assert pool.variant is PoolVariant.CLMM
    assert (pool.token_a_mint, pool.token_b_mint) == (addresses.ray, addresses.usdc)
    assert pool.token_a_decimals is None and pool.token_b_decimals is None
    assert pool.lp_mint == NOT_APPLICABLE
    assert not pool.has_lp_token
    assert pool.lp_supply == pool.liquidity == 5_000_000
    assert pool.fee_percent == Decimal("0.25")
    assert pool.raw_fields["tick_current"] == -120


def test_whirlpool_fee_in_hundredths_of_a_basis_point(whirlpool_fixture, addresses):
    pool = decode(detect(whirlpool_fixture), whirlpool_fixture)
    assert (pool.fee_numerator, pool.fee_denominator) == (3000, 1_000_000)
    assert pool.fee_percent == Decimal("0.3")
    assert pool.token_a_vault == addresses.vault_a
    assert pool.token_b_mint == addresses.usdc
    assert pool.liquidity == 10**12


def test_dlmm_vaults_are_reserve_accounts(dlmm_fixture, addresses):
    pool = decode(detect(dlmm_fixture), dlmm_fixture)
    assert (pool.token_a_mint, pool.token_b_mint) == (addresses.jup, addresses.usdc)
    assert (pool.token_a_vault, pool.token_b_vault) == (addresses.vault_a, addresses.vault_b)
    assert pool.fee_percent == Decimal("0.2")
    assert pool.embedded_reserves is None
    assert pool.raw_fields["active_id"] == -42


def test_bonding_curve_embeds_reserves(bonding_curve_fixture, addresses):
    pool = decode(detect(bonding_curve_fixture), bonding_curve_fixture)
    assert pool.token_a_mint == addresses.wsol
    assert pool.token_b_mint == addresses.jup
    assert (pool.token_a_decimals, pool.token_b_decimals) == (9, 6)
    assert pool.embedded_reserves == (5 * 10**9, 700_000_000 * 10**6)
    assert pool.token_a_vault == NOT_APPLICABLE
    assert pool.fee_percent == Decimal("1")
    assert pool.status_code == 0


def test_completed_bonding_curve_status(builders):
    pool = DECODERS[PoolVariant.BONDING_CURVE].parse(builders["BondingCurve"](complete=True))
    assert pool.status_code == 1


@pytest.mark.parametrize("variant", list(DECODERS))
def test_truncated_buffers_fail_closed(builders, variant):
    layout = REGISTRY[variant]
    full = builders[variant.value]()
    for length in (0, 8, layout.min_length // 2, layout.min_length - 1):
        with pytest.raises(TruncatedAccountData) as excinfo:
            decode(detection_for(variant), full[:length])
        assert excinfo.value.required == layout.min_length
        assert excinfo.value.actual == length


def test_min_length_buffer_decodes(builders):
    layout = REGISTRY[PoolVariant.WHIRLPOOL]
    data = builders["Whirlpool"]()[: layout.min_length]
    assert decode(detection_for(PoolVariant.WHIRLPOOL), data).liquidity == 10**12


def test_safe_decode_returns_error_instead_of_raising(v4_fixture):
    result = safe_decode(detection_for(PoolVariant.V4), v4_fixture[:100])
    assert isinstance(result, TruncatedAccountData)
    assert isinstance(result, DecodeError)


def test_unknown_detection_cannot_be_decoded():
    result = detect(b"\x01" * 64)
    with pytest.raises(UnrecognizedStructure) as excinfo:
        decode(result, b"\x01" * 64)
    assert "64 bytes" in excinfo.value.reason


def test_clmm_decode_rejects_zeroed_vault(builders):
    data = builders["CLMM"](token_vault_b="11111111111111111111111111111111")
    with pytest.raises(StructuralValidationFailure):
        decode(detection_for(PoolVariant.CLMM), data)


def test_parsed_pool_serializes_to_json(dlmm_fixture):
    pool = decode(detect(dlmm_fixture), dlmm_fixture)
    payload = json.loads(json.dumps(to_serializable(pool)))
    assert payload["variant"] == "DLMM"
    assert payload["lp_mint"] == "N/A"
    assert payload["raw_fields"]["bin_step"] == 25


def test_parsed_pools_are_hashable(clmm_fixture, dlmm_fixture):
    first = decode(detect(clmm_fixture), clmm_fixture)
    again = decode(detect(clmm_fixture), clmm_fixture)
    other = decode(detect(dlmm_fixture), dlmm_fixture)
    assert first == again
    assert hash(first) == hash(again)
    assert len({first, again, other}) == 2
