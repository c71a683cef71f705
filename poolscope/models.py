"""Immutable records passed between the detector, decoders, resolver and analyzers."""
from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

NOT_APPLICABLE = "N/A"


class PoolVariant(str, Enum):
    V4 = "V4"
    CLMM = "CLMM"
    WHIRLPOOL = "Whirlpool"
    DLMM = "DLMM"
    BONDING_CURVE = "BondingCurve"
    UNKNOWN = "Unknown"


class Confidence(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Direction(str, Enum):
    BUY = "Buy"
    SELL = "Sell"


def scale_amount(raw: int, decimals: int) -> Decimal:
    return Decimal(raw).scaleb(-decimals)


@dataclass(frozen=True)
class RawAccount:
    address: str
    data: bytes

    @property
    def length(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class DetectionResult:
    variant: PoolVariant
    declared_size: int
    discriminator: Optional[str]
    confidence: Confidence
    reason: str
    rule: Optional[str] = None


@dataclass(frozen=True)
class ParsedPool:
    """Protocol-neutral view of one pool account.

    Concepts a protocol does not have are filled with sentinels: ``NOT_APPLICABLE``
    for addresses, ``None`` for decimals that live on the mint account instead of
    the pool, and ``0`` for ``lp_supply`` on pools without an LP token.
    """

    variant: PoolVariant
    token_a_mint: str
    token_b_mint: str
    token_a_vault: str
    token_b_vault: str
    token_a_decimals: Optional[int]
    token_b_decimals: Optional[int]
    lp_mint: str
    lp_supply: int
    fee_numerator: int
    fee_denominator: int
    status_code: int
    liquidity: int = 0
    embedded_reserves: Optional[Tuple[int, int]] = None
    raw_fields: Optional[Mapping[str, Any]] = field(default=None, compare=False, hash=False)

    @property
    def fee_percent(self) -> Decimal:
        return Decimal(self.fee_numerator) * 100 / Decimal(self.fee_denominator)

    @property
    def has_lp_token(self) -> bool:
        return self.lp_mint != NOT_APPLICABLE


@dataclass(frozen=True)
class PoolReserves:
    token_a_raw: int
    token_b_raw: int
    token_a_decimals: int
    token_b_decimals: int

    @property
    def token_a_amount(self) -> Decimal:
        return scale_amount(self.token_a_raw, self.token_a_decimals)

    @property
    def token_b_amount(self) -> Decimal:
        return scale_amount(self.token_b_raw, self.token_b_decimals)


@dataclass(frozen=True)
class PoolHealth:
    is_healthy: bool
    issues: Tuple[str, ...]
    warnings: Tuple[str, ...]
    status_text: str


@dataclass(frozen=True)
class AdjustedReserves:
    token_a_mint: str
    token_b_mint: str
    token_a_amount: Decimal
    token_b_amount: Decimal
    token_a_symbol: str
    token_b_symbol: str
    pool_type: str
    pool_status: str
    fee_display: str
    lp_mint: str
    lp_supply: int
    tvl_usd: Optional[Decimal] = None


@dataclass(frozen=True)
class PoolMints:
    token_a: str
    token_b: str


@dataclass(frozen=True)
class TokenDelta:
    mint: str
    raw_amount: int
    decimals: int

    @property
    def ui_amount(self) -> Decimal:
        return scale_amount(self.raw_amount, self.decimals)


@dataclass(frozen=True)
class BalanceDeltaRecord:
    """Canonical per-transaction balance changes of the signing wallet."""

    signature: str
    timestamp: int
    wallet: str
    token_deltas: Tuple[TokenDelta, ...]
    native_delta: int = 0
    program_ids: Tuple[str, ...] = ()

    def delta_for(self, mint: str) -> Optional[TokenDelta]:
        for delta in self.token_deltas:
            if delta.mint == mint:
                return delta
        return None


@dataclass(frozen=True)
class ParsedSwap:
    signature: str
    timestamp: int
    wallet: str
    direction: Direction
    amount_in: int
    amount_out: int
    amount_usd: Optional[float] = None


@dataclass
class WalletAggregate:
    address: str
    tx_count: int = 0
    buy_count: int = 0
    sell_count: int = 0
    total_volume: int = 0
    first_seen: Optional[int] = None
    last_seen: Optional[int] = None
    round_trips: int = 0
    last_direction: Optional[Direction] = None


@dataclass(frozen=True)
class WalletActivity:
    address: str
    tx_count: int
    buy_count: int
    sell_count: int
    total_volume: int
    volume_share: float
    first_seen: Optional[int]
    last_seen: Optional[int]


@dataclass(frozen=True)
class TraderActivity:
    address: str
    buy_count: int
    sell_count: int
    volume: int


@dataclass(frozen=True)
class TransactionSummary:
    total_count: int
    buy_count: int
    sell_count: int
    unique_wallets: int
    top_wallets: Tuple[WalletActivity, ...]
    top_traders: Tuple[TraderActivity, ...]
    suspicious_patterns: Tuple[str, ...]
    time_range: Optional[Tuple[int, int]]
    summary: str


def to_serializable(value: Any) -> Any:
    """Convert records into JSON-friendly primitives."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_serializable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, Mapping):
        return {str(k): to_serializable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_serializable(v) for v in value]
    return value


@dataclass(frozen=True)
class PoolReport:
    address: str
    detection: DetectionResult
    pool: ParsedPool
    health: PoolHealth
    reserves: AdjustedReserves
