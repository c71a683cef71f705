"""Canonical pool-account buffers built from the layout tables."""
from __future__ import annotations

import struct

import base58
import pytest

from poolscope.layouts import (
    METEORA_DLMM,
    ORCA_WHIRLPOOL,
    PUMPFUN_BONDING_CURVE,
    RAYDIUM_CLMM,
    RAYDIUM_V4,
    STRUCT_FORMATS,
    ProtocolLayout,
)

WSOL = "So11111111111111111111111111111111111111112"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
RAY = "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R"
JUP = "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN"
VAULT_A = "J83w4HKfqxwcq3BEMMkPFSppX3gqekLyLJBexebFVkix"
VAULT_B = "2wT8Yq49kHgDzXuPxZSaeLaH1qbmGXtEyPy64bL7aD3c"
LP_MINT = "58oQChx4yWmvKdwLLZzBi4ChoCc2fqCUWBkwMihLYQo2"


def encode_value(kind: str, size: int, value) -> bytes:
    if kind == "pubkey":
        raw = base58.b58decode(value)
    elif kind == "bool":
        raw = b"\x01" if value else b"\x00"
    elif kind in STRUCT_FORMATS:
        raw = struct.pack(STRUCT_FORMATS[kind], value)
    elif kind == "u128":
        raw = int(value).to_bytes(16, "little")
    else:
        raw = bytes(value)
    assert len(raw) == size, f"{kind} value encodes to {len(raw)} bytes, expected {size}"
    return raw


def build_account(layout: ProtocolLayout, size: int, **values) -> bytes:
    data = bytearray(size)
    if layout.discriminator:
        data[: len(layout.discriminator)] = layout.discriminator
    for name, value in values.items():
        field = layout.get_field(name)
        data[field.offset:field.end] = encode_value(field.type, field.size, value)
    return bytes(data)


def v4_account(size: int = 752, **overrides) -> bytes:
    values = dict(
        status=1,
        base_decimal=9,
        quote_decimal=6,
        swap_fee_numerator=25,
        swap_fee_denominator=10_000,
        base_vault=VAULT_A,
        quote_vault=VAULT_B,
        base_mint=WSOL,
        quote_mint=USDC,
        lp_mint=LP_MINT,
        lp_reserve=1_000_000_000,
    )
    values.update(overrides)
    return build_account(RAYDIUM_V4, size, **values)


def clmm_account(size: int = 1000, **overrides) -> bytes:
    values = dict(
        token_mint_a=RAY,
        token_mint_b=USDC,
        token_vault_a=VAULT_A,
        token_vault_b=VAULT_B,
        fee_rate=25,
        liquidity=5_000_000,
        tick_current=-120,
    )
    values.update(overrides)
    return build_account(RAYDIUM_CLMM, size, **values)


def whirlpool_account(size: int = 653, **overrides) -> bytes:
    values = dict(
        tick_spacing=64,
        fee_rate=3000,
        liquidity=10**12,
        token_mint_a=WSOL,
        token_vault_a=VAULT_A,
        token_mint_b=USDC,
        token_vault_b=VAULT_B,
    )
    values.update(overrides)
    return build_account(ORCA_WHIRLPOOL, size, **values)


def dlmm_account(size: int = 500, **overrides) -> bytes:
    values = dict(
        bin_step=25,
        active_id=-42,
        base_fee_rate=20,
        liquidity=7_000,
        token_x_mint=JUP,
        token_y_mint=USDC,
        reserve_x=VAULT_A,
        reserve_y=VAULT_B,
    )
    values.update(overrides)
    return build_account(METEORA_DLMM, size, **values)


def bonding_curve_account(size: int = 301, **overrides) -> bytes:
    values = dict(
        token_mint=JUP,
        authority=VAULT_A,
        virtual_sol_reserves=30 * 10**9,
        virtual_token_reserves=1_073_000_000 * 10**6,
        real_sol_reserves=5 * 10**9,
        real_token_reserves=700_000_000 * 10**6,
        token_total_supply=1_000_000_000 * 10**6,
        complete=False,
    )
    values.update(overrides)
    return build_account(PUMPFUN_BONDING_CURVE, size, **values)


@pytest.fixture
def v4_fixture() -> bytes:
    return v4_account()


@pytest.fixture
def clmm_fixture() -> bytes:
    return clmm_account()


@pytest.fixture
def whirlpool_fixture() -> bytes:
    return whirlpool_account()


@pytest.fixture
def dlmm_fixture() -> bytes:
    return dlmm_account()


@pytest.fixture
def bonding_curve_fixture() -> bytes:
    return bonding_curve_account()


@pytest.fixture
def builders():
    """Account builders keyed by variant name, accepting size and field overrides."""
    return {
        "V4": v4_account,
        "CLMM": clmm_account,
        "Whirlpool": whirlpool_account,
        "DLMM": dlmm_account,
        "BondingCurve": bonding_curve_account,
    }


@pytest.fixture
def addresses():
    class Addresses:
        wsol = WSOL
        usdc = USDC
        ray = RAY
        jup = JUP
        vault_a = VAULT_A
        vault_b = VAULT_B
        lp_mint = LP_MINT

    return Addresses
