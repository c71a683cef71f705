"""Declarative account layouts for every supported pool protocol.

Each protocol is described once: field offsets and widths, the size/discriminator
signals used for detection, fee units and status codes. The detector's structural
validation and the decoders both read fields through ``read_field`` so the two can
never disagree about where a value lives.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

import base58

from . import config
from .models import Confidence, PoolVariant

FIELD_SIZES = {
    "bool": 1,
    "u8": 1,
    "u16": 2,
    "u32": 4,
    "i32": 4,
    "u64": 8,
    "u128": 16,
    "pubkey": 32,
}

STRUCT_FORMATS = {
    "u8": "<B",
    "u16": "<H",
    "u32": "<I",
    "i32": "<i",
    "u64": "<Q",
}


@dataclass(frozen=True)
class LayoutField:
    """Pool state field definition"""

    offset: int
    name: str
    type: str
    size: int = 0
    description: str = ""

    def __post_init__(self) -> None:
        if not self.size:
            object.__setattr__(self, "size", FIELD_SIZES.get(self.type, 0))

    @property
    def end(self) -> int:
        return self.offset + self.size


@dataclass(frozen=True)
class ProtocolLayout:
    variant: PoolVariant
    display_name: str
    program_id: str
    fields: Tuple[LayoutField, ...]
    discriminator: Optional[bytes] = None
    exact_size: Optional[int] = None
    size_range: Optional[Tuple[int, int]] = None
    # Structural validation: these pubkeys must be non-zero and the fee field in range
    validated_pubkeys: Tuple[str, ...] = ()
    fee_field: Optional[str] = None
    fee_bounds: Tuple[int, int] = (1, 10_000)
    fee_denominator: int = 10_000
    fee_display_places: int = 2
    canonical_status: int = 1
    active_statuses: frozenset = frozenset({1})
    status_labels: Mapping[int, str] = field(default_factory=dict)
    status_issues: Mapping[int, str] = field(default_factory=dict)
    tracks_liquidity: bool = False
    lp_bearing: bool = False
    reserves_embedded: bool = False

    @property
    def min_length(self) -> int:
        return max(f.end for f in self.fields)

    def get_field(self, name: str) -> LayoutField:
        for candidate in self.fields:
            if candidate.name == name:
                return candidate
        raise KeyError(f"{self.variant.value} layout has no field {name!r}")

    def status_text(self, code: int) -> str:
        return self.status_labels.get(code, f"Status {code}")


@dataclass(frozen=True)
class DetectionRule:
    name: str
    variant: PoolVariant
    kind: str
    confidence: Confidence
    reason: str
    size_band: Optional[Tuple[int, int]] = None


def read_field(layout_field: LayoutField, data: bytes) -> Optional[Any]:
    """Decode one field, or return None when the buffer is too short."""
    if layout_field.end > len(data):
        return None
    raw_bytes = bytes(data[layout_field.offset:layout_field.end])
    kind = layout_field.type
    if kind == "bool":
        return bool(raw_bytes[0])
    if kind in STRUCT_FORMATS:
        return struct.unpack(STRUCT_FORMATS[kind], raw_bytes)[0]
    if kind == "u128":
        return int.from_bytes(raw_bytes, "little")
    if kind == "pubkey":
        return base58.b58encode(raw_bytes).decode()
    return raw_bytes.hex()


def read_fields(layout: ProtocolLayout, data: bytes) -> Dict[str, Any]:
    return {f.name: read_field(f, data) for f in layout.fields}


def is_zeroed(layout_field: LayoutField, data: bytes) -> bool:
    """True when the field is missing or every byte is zero."""
    if layout_field.end > len(data):
        return True
    return not any(data[layout_field.offset:layout_field.end])


RAYDIUM_V4 = ProtocolLayout(
    variant=PoolVariant.V4,
    display_name="Raydium AMM V4",
    program_id=config.RAYDIUM_AMM_V4_PROGRAM_ID,
    exact_size=752,
    fields=(
        LayoutField(0, "status", "u64"),
        LayoutField(8, "nonce", "u64"),
        LayoutField(16, "max_order", "u64"),
        LayoutField(24, "depth", "u64"),
        LayoutField(32, "base_decimal", "u64"),
        LayoutField(40, "quote_decimal", "u64"),
        LayoutField(48, "state", "u64"),
        LayoutField(56, "reset_flag", "u64"),
        LayoutField(64, "min_size", "u64"),
        LayoutField(176, "swap_fee_numerator", "u64"),
        LayoutField(184, "swap_fee_denominator", "u64"),
        LayoutField(192, "base_need_take_pnl", "u64"),
        LayoutField(200, "quote_need_take_pnl", "u64"),
        LayoutField(224, "pool_open_time", "u64"),
        LayoutField(336, "base_vault", "pubkey"),
        LayoutField(368, "quote_vault", "pubkey"),
        LayoutField(400, "base_mint", "pubkey"),
        LayoutField(432, "quote_mint", "pubkey"),
        LayoutField(464, "lp_mint", "pubkey"),
        LayoutField(496, "open_orders", "pubkey"),
        LayoutField(528, "market_id", "pubkey"),
        LayoutField(560, "market_program_id", "pubkey"),
        LayoutField(592, "target_orders", "pubkey"),
        LayoutField(688, "owner", "pubkey"),
        LayoutField(720, "lp_reserve", "u64"),
    ),
    fee_display_places=3,
    canonical_status=1,
    active_statuses=frozenset({1, 2, 3, 4, 5, 7}),
    status_labels={0: "Uninitialized", 1: "Active", 6: "Disabled"},
    status_issues={0: "Pool is uninitialized", 6: "Pool is disabled by authority"},
    lp_bearing=True,
)

RAYDIUM_CLMM = ProtocolLayout(
    variant=PoolVariant.CLMM,
    display_name="Raydium CLMM",
    program_id=config.RAYDIUM_CLMM_PROGRAM_ID,
    size_range=(800, 1200),
    fields=(
        LayoutField(0, "discriminator", "bytes", size=8),
        LayoutField(8, "amm_config", "pubkey"),
        LayoutField(40, "token_mint_a", "pubkey"),
        LayoutField(72, "token_mint_b", "pubkey"),
        LayoutField(104, "token_vault_a", "pubkey"),
        LayoutField(136, "token_vault_b", "pubkey"),
        LayoutField(168, "observation_index", "u16"),
        LayoutField(170, "fee_rate", "u32", description="basis points"),
        LayoutField(174, "protocol_fee_rate", "u32"),
        LayoutField(178, "liquidity", "u128"),
        LayoutField(194, "sqrt_price_x64", "u128"),
        LayoutField(210, "tick_current", "i32"),
    ),
    validated_pubkeys=("token_mint_a", "token_mint_b", "token_vault_a", "token_vault_b"),
    fee_field="fee_rate",
    status_labels={1: "Active"},
    tracks_liquidity=True,
)

ORCA_WHIRLPOOL = ProtocolLayout(
    variant=PoolVariant.WHIRLPOOL,
    display_name="Orca Whirlpool",
    program_id=config.ORCA_WHIRLPOOL_PROGRAM_ID,
    exact_size=653,
    discriminator=bytes.fromhex("3f95d10ce1806309"),
    fields=(
        LayoutField(0, "discriminator", "bytes", size=8),
        LayoutField(8, "whirlpools_config", "pubkey"),
        LayoutField(40, "bump", "u8"),
        LayoutField(41, "tick_spacing", "u16"),
        LayoutField(43, "tick_spacing_seed", "bytes", size=2),
        LayoutField(45, "fee_rate", "u16", description="hundredths of a basis point"),
        LayoutField(47, "protocol_fee_rate", "u16"),
        LayoutField(49, "liquidity", "u128"),
        LayoutField(65, "sqrt_price", "u128"),
        LayoutField(81, "tick_current_index", "i32"),
        LayoutField(85, "protocol_fee_owed_a", "u64"),
        LayoutField(93, "protocol_fee_owed_b", "u64"),
        LayoutField(101, "token_mint_a", "pubkey"),
        LayoutField(133, "token_vault_a", "pubkey"),
        LayoutField(165, "fee_growth_global_a", "u128"),
        LayoutField(181, "token_mint_b", "pubkey"),
        LayoutField(213, "token_vault_b", "pubkey"),
        LayoutField(245, "fee_growth_global_b", "u128"),
    ),
    fee_denominator=1_000_000,
    fee_display_places=4,
    status_labels={1: "Active"},
    tracks_liquidity=True,
)

METEORA_DLMM = ProtocolLayout(
    variant=PoolVariant.DLMM,
    display_name="Meteora DLMM",
    program_id=config.METEORA_DLMM_PROGRAM_ID,
    size_range=(358, 600),
    fields=(
        LayoutField(0, "discriminator", "bytes", size=8),
        LayoutField(8, "parameters", "bytes", size=32),
        LayoutField(40, "v_parameters", "bytes", size=32),
        LayoutField(72, "bump_seed", "u8"),
        LayoutField(73, "bin_step", "u16"),
        LayoutField(75, "pair_type", "u8"),
        LayoutField(76, "active_id", "i32"),
        LayoutField(80, "base_fee_rate", "u16", description="basis points"),
        LayoutField(82, "max_fee_rate", "u16"),
        LayoutField(84, "protocol_fee", "u16"),
        LayoutField(86, "liquidity", "u128"),
        LayoutField(230, "token_x_mint", "pubkey"),
        LayoutField(262, "token_y_mint", "pubkey"),
        LayoutField(294, "reserve_x", "pubkey"),
        LayoutField(326, "reserve_y", "pubkey"),
    ),
    validated_pubkeys=("token_x_mint", "token_y_mint", "reserve_x", "reserve_y"),
    fee_field="base_fee_rate",
    status_labels={1: "Active"},
)

PUMPFUN_BONDING_CURVE = ProtocolLayout(
    variant=PoolVariant.BONDING_CURVE,
    display_name="Pump.fun Bonding Curve",
    program_id=config.PUMPFUN_PROGRAM_ID,
    discriminator=bytes.fromhex("f19a6d0411b16dbc"),
    fields=(
        LayoutField(0, "discriminator", "bytes", size=8),
        LayoutField(8, "token_mint", "pubkey"),
        LayoutField(40, "authority", "pubkey"),
        LayoutField(72, "virtual_sol_reserves", "u64"),
        LayoutField(80, "virtual_token_reserves", "u64"),
        LayoutField(88, "real_sol_reserves", "u64"),
        LayoutField(96, "real_token_reserves", "u64"),
        LayoutField(104, "token_total_supply", "u64"),
        LayoutField(112, "complete", "bool"),
    ),
    fee_denominator=100,
    fee_display_places=1,
    canonical_status=0,
    active_statuses=frozenset({0}),
    status_labels={0: "Active", 1: "Complete"},
    status_issues={1: "Bonding curve complete - token migrated to Raydium"},
    reserves_embedded=True,
)

REGISTRY: Dict[PoolVariant, ProtocolLayout] = {
    layout.variant: layout
    for layout in (RAYDIUM_V4, RAYDIUM_CLMM, ORCA_WHIRLPOOL, METEORA_DLMM, PUMPFUN_BONDING_CURVE)
}

# First match wins; most specific signal first.
DETECTION_RULES: Tuple[DetectionRule, ...] = (
    DetectionRule(
        "bonding_curve_discriminator",
        PoolVariant.BONDING_CURVE,
        "discriminator",
        Confidence.HIGH,
        "Pump.fun bonding curve discriminator match",
    ),
    DetectionRule(
        "v4_exact_size",
        PoolVariant.V4,
        "exact_size",
        Confidence.HIGH,
        "Exact size match for Raydium AMM V4 (752 bytes)",
    ),
    DetectionRule(
        "whirlpool_size_and_discriminator",
        PoolVariant.WHIRLPOOL,
        "exact_size_and_discriminator",
        Confidence.HIGH,
        "Orca Whirlpool discriminator and size match (653 bytes)",
    ),
    DetectionRule(
        "dlmm_structure",
        PoolVariant.DLMM,
        "size_range_validated",
        Confidence.HIGH,
        "Valid Meteora DLMM structure detected",
    ),
    DetectionRule(
        "clmm_structure",
        PoolVariant.CLMM,
        "size_range_validated",
        Confidence.HIGH,
        "Valid CLMM structure detected",
    ),
    # Legacy V4 accounts occasionally report a slightly smaller size.
    DetectionRule(
        "v4_size_drift",
        PoolVariant.V4,
        "size_band",
        Confidence.MEDIUM,
        "Size very close to V4 (742-751 bytes)",
        size_band=(742, 751),
    ),
)

SIZE_DRIFT_RULE = "v4_size_drift"


def layout_for(variant: PoolVariant) -> ProtocolLayout:
    try:
        return REGISTRY[variant]
    except KeyError:
        raise ValueError(f"No layout registered for {variant.value}") from None
