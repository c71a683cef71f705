"""Profile the wallets behind a pool's swaps from their signature history."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from . import config
from .errors import LedgerUnavailable
from .ledger import SignatureSource
from .models import WalletActivity

SECONDS_PER_DAY = 86_400
BOT_TX_PER_DAY = 100
NEW_WALLET_BURST = 50
WHALE_POOL_SHARE = 30
WHALE_POOL_TXS = 50
NEW_WALLET_DAYS = 7


@dataclass(frozen=True)
class WalletProfile:
    address: str
    wallet_age_days: Optional[float]
    total_transactions: int
    avg_tx_per_day: float
    recent_transactions: int
    pool_transactions: int
    pool_share: float
    is_bot: bool
    is_whale: bool
    risk_level: str
    summary: str


def build_profile(
    address: str,
    block_times: Sequence[Optional[int]],
    pool_tx_count: int,
    pool_total_txs: int,
    now: float,
) -> WalletProfile:
    times = [t for t in block_times if t is not None]
    total = len(block_times)
    age_days = (now - min(times)) / SECONDS_PER_DAY if times else None
    avg_per_day = total / max(age_days or 0, 1)
    recent = sum(1 for t in times if t >= now - SECONDS_PER_DAY)
    pool_share = pool_tx_count / pool_total_txs * 100 if pool_total_txs else 0.0

    is_young = age_days is not None and age_days < 1
    is_bot = avg_per_day > BOT_TX_PER_DAY or (is_young and recent > NEW_WALLET_BURST)
    is_whale = pool_share > WHALE_POOL_SHARE or pool_tx_count > WHALE_POOL_TXS

    if is_bot or (is_young and is_whale):
        risk = "high"
    elif (age_days is not None and age_days < NEW_WALLET_DAYS) or is_whale:
        risk = "medium"
    else:
        risk = "low"

    parts = []
    if is_bot:
        parts.append(f"Bot-like activity ({avg_per_day:.0f} tx/day)")
    if age_days is not None and age_days < NEW_WALLET_DAYS:
        parts.append(f"New wallet ({age_days:.1f} days old)")
    if is_whale:
        parts.append(f"Whale ({pool_share:.1f}% of pool transactions)")

    return WalletProfile(
        address=address,
        wallet_age_days=age_days,
        total_transactions=total,
        avg_tx_per_day=avg_per_day,
        recent_transactions=recent,
        pool_transactions=pool_tx_count,
        pool_share=pool_share,
        is_bot=is_bot,
        is_whale=is_whale,
        risk_level=risk,
        summary="; ".join(parts) if parts else "Regular wallet",
    )


def basic_profile(address: str, pool_tx_count: int, pool_total_txs: int) -> WalletProfile:
    pool_share = pool_tx_count / pool_total_txs * 100 if pool_total_txs else 0.0
    return WalletProfile(
        address=address,
        wallet_age_days=None,
        total_transactions=0,
        avg_tx_per_day=0.0,
        recent_transactions=0,
        pool_transactions=pool_tx_count,
        pool_share=pool_share,
        is_bot=False,
        is_whale=pool_share > WHALE_POOL_SHARE or pool_tx_count > WHALE_POOL_TXS,
        risk_level="low",
        summary="Unable to fetch wallet history",
    )


async def profile_wallet(
    source: SignatureSource,
    address: str,
    pool_tx_count: int,
    pool_total_txs: int,
    now: Optional[float] = None,
    limit: int = config.WALLET_HISTORY_LIMIT,
) -> WalletProfile:
    try:
        block_times = await source.get_signature_times(address, limit)
    except LedgerUnavailable as exc:
        logging.warning("Wallet history unavailable for %s: %s", address, exc)
        return basic_profile(address, pool_tx_count, pool_total_txs)
    return build_profile(address, block_times, pool_tx_count, pool_total_txs, now if now is not None else time.time())


async def profile_wallets(
    source: SignatureSource,
    wallets: Sequence[WalletActivity],
    pool_total_txs: int,
    now: Optional[float] = None,
) -> List[WalletProfile]:
    return list(
        await asyncio.gather(
            *(profile_wallet(source, w.address, w.tx_count, pool_total_txs, now=now) for w in wallets)
        )
    )
