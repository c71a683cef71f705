"""Per-protocol decoders turning pool-account bytes into a ParsedPool."""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, Union

from . import config
from .detector import passes_structural_validation
from .errors import DecodeError, StructuralValidationFailure, TruncatedAccountData, UnrecognizedStructure
from .layouts import (
    METEORA_DLMM,
    ORCA_WHIRLPOOL,
    PUMPFUN_BONDING_CURVE,
    RAYDIUM_CLMM,
    RAYDIUM_V4,
    ProtocolLayout,
    read_fields,
)
from .models import NOT_APPLICABLE, DetectionResult, ParsedPool, PoolVariant

# Raydium's standard 0.25% swap fee, used when the account leaves the fee unset
DEFAULT_V4_FEE = (25, 10_000)
MAX_DECIMALS = 30
PUMPFUN_TOKEN_DECIMALS = 6
SOL_DECIMALS = 9


class PoolDecoder:
    """Uniform decoder interface: ``parse(bytes) -> ParsedPool``."""

    layout: ProtocolLayout

    def parse(self, data: bytes) -> ParsedPool:
        data = bytes(data)
        if len(data) < self.layout.min_length:
            raise TruncatedAccountData(self.layout.variant.value, self.layout.min_length, len(data))
        if self.layout.validated_pubkeys and not passes_structural_validation(self.layout, data):
            raise StructuralValidationFailure(
                self.layout.variant.value, "zeroed mint/vault or fee rate outside plausible range"
            )
        values = read_fields(self.layout, data)
        return self.build(values)

    def build(self, values: Dict[str, Any]) -> ParsedPool:
        raise NotImplementedError


class RaydiumV4Decoder(PoolDecoder):
    layout = RAYDIUM_V4

    def build(self, values: Dict[str, Any]) -> ParsedPool:
        base_decimals = values["base_decimal"]
        quote_decimals = values["quote_decimal"]
        if base_decimals > MAX_DECIMALS or quote_decimals > MAX_DECIMALS:
            raise StructuralValidationFailure(
                self.layout.variant.value,
                f"implausible decimals {base_decimals}/{quote_decimals}",
            )
        return ParsedPool(
            variant=self.layout.variant,
            token_a_mint=values["base_mint"],
            token_b_mint=values["quote_mint"],
            token_a_vault=values["base_vault"],
            token_b_vault=values["quote_vault"],
            token_a_decimals=base_decimals,
            token_b_decimals=quote_decimals,
            lp_mint=values["lp_mint"],
            lp_supply=values["lp_reserve"],
            fee_numerator=values["swap_fee_numerator"] or DEFAULT_V4_FEE[0],
            fee_denominator=values["swap_fee_denominator"] or DEFAULT_V4_FEE[1],
            status_code=values["status"],
            raw_fields=MappingProxyType(values),
        )


class ConcentratedPoolDecoder(PoolDecoder):
    """Tick/bin based pools: decimals live on the mints and there is no LP token."""

    mint_fields = ("token_mint_a", "token_mint_b")
    vault_fields = ("token_vault_a", "token_vault_b")
    fee_field = "fee_rate"

    def build(self, values: Dict[str, Any]) -> ParsedPool:
        liquidity = values["liquidity"]
        return ParsedPool(
            variant=self.layout.variant,
            token_a_mint=values[self.mint_fields[0]],
            token_b_mint=values[self.mint_fields[1]],
            token_a_vault=values[self.vault_fields[0]],
            token_b_vault=values[self.vault_fields[1]],
            token_a_decimals=None,
            token_b_decimals=None,
            lp_mint=NOT_APPLICABLE,
            lp_supply=liquidity,
            fee_numerator=values[self.fee_field],
            fee_denominator=self.layout.fee_denominator,
            status_code=self.layout.canonical_status,
            liquidity=liquidity,
            raw_fields=MappingProxyType(values),
        )


class RaydiumClmmDecoder(ConcentratedPoolDecoder):
    layout = RAYDIUM_CLMM


class OrcaWhirlpoolDecoder(ConcentratedPoolDecoder):
    layout = ORCA_WHIRLPOOL


class MeteoraDlmmDecoder(ConcentratedPoolDecoder):
    layout = METEORA_DLMM
    mint_fields = ("token_x_mint", "token_y_mint")
    vault_fields = ("reserve_x", "reserve_y")
    fee_field = "base_fee_rate"


class PumpfunBondingCurveDecoder(PoolDecoder):
    layout = PUMPFUN_BONDING_CURVE

    def build(self, values: Dict[str, Any]) -> ParsedPool:
        complete = values["complete"]
        return ParsedPool(
            variant=self.layout.variant,
            token_a_mint=config.WSOL_MINT,
            token_b_mint=values["token_mint"],
            token_a_vault=NOT_APPLICABLE,
            token_b_vault=NOT_APPLICABLE,
            token_a_decimals=SOL_DECIMALS,
            token_b_decimals=PUMPFUN_TOKEN_DECIMALS,
            lp_mint=NOT_APPLICABLE,
            lp_supply=0,
            fee_numerator=1,
            fee_denominator=self.layout.fee_denominator,
            status_code=1 if complete else self.layout.canonical_status,
            embedded_reserves=(values["real_sol_reserves"], values["real_token_reserves"]),
            raw_fields=MappingProxyType(values),
        )


DECODERS: Dict[PoolVariant, PoolDecoder] = {
    decoder.layout.variant: decoder
    for decoder in (
        RaydiumV4Decoder(),
        RaydiumClmmDecoder(),
        OrcaWhirlpoolDecoder(),
        MeteoraDlmmDecoder(),
        PumpfunBondingCurveDecoder(),
    )
}


def decode(detection: DetectionResult, data: bytes) -> ParsedPool:
    decoder = DECODERS.get(detection.variant)
    if decoder is None:
        raise UnrecognizedStructure(detection.reason)
    return decoder.parse(data)


def safe_decode(detection: DetectionResult, data: bytes) -> Union[ParsedPool, DecodeError]:
    """Decode without raising, for callers working through a batch of accounts."""
    try:
        return decode(detection, data)
    except DecodeError as exc:
        logging.warning("Skipping undecodable %s account: %s", detection.variant.value, exc)
        return exc
