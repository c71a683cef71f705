"""Batch trading analytics over classified swaps."""
from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .models import (
    Direction,
    ParsedSwap,
    TraderActivity,
    TransactionSummary,
    WalletActivity,
    WalletAggregate,
)

TOP_WALLETS = 10
TOP_TRADERS = 5

MIN_SAMPLE = 10
WASH_MIN_SAMPLE = 20
WASH_MIN_ROUND_TRIPS = 10
WHALE_SHARE_PERCENT = 30
BUY_RATIO_HIGH = 0.85
BUY_RATIO_LOW = 0.15
RAPID_CYCLE_MIN_ROUND_TRIPS = 5
RAPID_CYCLE_MAX_TXS = 20
OUTLIER_MULTIPLE = 10
CLUSTER_SHARE = 0.20
NEW_WALLET_MAX_TXS = 2
NEW_WALLET_SHARE = 0.5
NEW_WALLET_MIN_WALLETS = 10
SPIKE_SLICES = 10
SPIKE_MULTIPLE = 3
SPIKE_MIN_SAMPLE = 100
BOT_BUCKET_USD = 10
BOT_SHARE = 0.30
BOT_MIN_SIZED = 20


class BatchFold:
    """Everything the heuristics need, gathered in one pass over the batch."""

    def __init__(self) -> None:
        self.wallets: Dict[str, WalletAggregate] = {}
        self.total_count = 0
        self.buy_count = 0
        self.sell_count = 0
        self.total_volume = 0
        self.timed_count = 0
        self.hour_counts: Counter = Counter()
        self.timestamps: List[int] = []
        self.volumes: List[int] = []
        self.usd_volumes: List[float] = []
        self.earliest: Optional[int] = None
        self.latest: Optional[int] = None

    def add(self, swap: ParsedSwap) -> None:
        wallet = self.wallets.get(swap.wallet)
        if wallet is None:
            wallet = self.wallets[swap.wallet] = WalletAggregate(address=swap.wallet)

        wallet.tx_count += 1
        if swap.direction is Direction.BUY:
            wallet.buy_count += 1
            self.buy_count += 1
        else:
            wallet.sell_count += 1
            self.sell_count += 1
            if wallet.last_direction is Direction.BUY:
                wallet.round_trips += 1
        wallet.last_direction = swap.direction
        wallet.total_volume += swap.amount_in

        self.total_count += 1
        self.total_volume += swap.amount_in
        if swap.amount_usd is not None:
            self.usd_volumes.append(swap.amount_usd)

        # A zero block time means the ledger did not report one
        if swap.timestamp <= 0:
            return
        wallet.first_seen = swap.timestamp if wallet.first_seen is None else min(wallet.first_seen, swap.timestamp)
        wallet.last_seen = swap.timestamp if wallet.last_seen is None else max(wallet.last_seen, swap.timestamp)
        self.timed_count += 1
        self.hour_counts[datetime.fromtimestamp(swap.timestamp, tz=timezone.utc).hour] += 1
        self.timestamps.append(swap.timestamp)
        self.volumes.append(swap.amount_in)
        self.earliest = swap.timestamp if self.earliest is None else min(self.earliest, swap.timestamp)
        self.latest = swap.timestamp if self.latest is None else max(self.latest, swap.timestamp)


def _short(address: str) -> str:
    return f"{address[:8]}..."


def _more(count: int) -> str:
    return f" (+{count} more wallets)" if count else ""


def detect_wash_trading(fold: BatchFold) -> Optional[str]:
    if fold.total_count < WASH_MIN_SAMPLE:
        return None
    flagged = sorted(
        (w for w in fold.wallets.values() if min(w.buy_count, w.sell_count) >= WASH_MIN_ROUND_TRIPS),
        key=lambda w: (-min(w.buy_count, w.sell_count), w.address),
    )
    if not flagged:
        return None
    lead = flagged[0]
    return (
        f"Possible wash trading: {_short(lead.address)} made "
        f"{min(lead.buy_count, lead.sell_count)} round-trip trades{_more(len(flagged) - 1)}"
    )


def detect_whale_concentration(fold: BatchFold) -> Optional[str]:
    if fold.total_count < MIN_SAMPLE or fold.total_volume <= 0:
        return None
    flagged = sorted(
        (w for w in fold.wallets.values() if w.total_volume * 100 > WHALE_SHARE_PERCENT * fold.total_volume),
        key=lambda w: (-w.total_volume, w.address),
    )
    if not flagged:
        return None
    lead = flagged[0]
    share = lead.total_volume / fold.total_volume * 100
    return f"Whale activity: {_short(lead.address)} controls {share:.1f}% of volume{_more(len(flagged) - 1)}"


def detect_imbalance(fold: BatchFold) -> Optional[str]:
    if fold.total_count < MIN_SAMPLE:
        return None
    buy_ratio = fold.buy_count / fold.total_count
    if buy_ratio > BUY_RATIO_HIGH:
        return "Extremely high buy ratio (>85%) - potential pump scheme"
    if buy_ratio < BUY_RATIO_LOW:
        return "Extremely high sell ratio (>85%) - potential dump or panic selling"
    return None


def detect_rapid_cycling(fold: BatchFold) -> Optional[str]:
    flagged = sorted(
        (
            w
            for w in fold.wallets.values()
            if w.round_trips >= RAPID_CYCLE_MIN_ROUND_TRIPS and w.tx_count < RAPID_CYCLE_MAX_TXS
        ),
        key=lambda w: (-w.round_trips, w.address),
    )
    if not flagged:
        return None
    lead = flagged[0]
    return (
        f"Rapid buy/sell cycling: {_short(lead.address)} completed {lead.round_trips} "
        f"round trips in {lead.tx_count} transactions{_more(len(flagged) - 1)}"
    )


def detect_large_outliers(fold: BatchFold) -> Optional[str]:
    if len(fold.usd_volumes) < MIN_SAMPLE:
        return None
    volumes = np.asarray(fold.usd_volumes, dtype=float)
    mean = float(volumes.mean())
    if mean <= 0:
        return None
    outliers = int((volumes > OUTLIER_MULTIPLE * mean).sum())
    if not outliers:
        return None
    return f"{outliers} large transactions exceed 10x the average volume of ${mean:,.2f}"


def detect_temporal_clustering(fold: BatchFold) -> Optional[str]:
    if fold.timed_count <= MIN_SAMPLE:
        return None
    hour, count = fold.hour_counts.most_common(1)[0]
    share = count / fold.timed_count
    if share <= CLUSTER_SHARE:
        return None
    return f"Temporal clustering: {share * 100:.0f}% of transactions occurred during hour {hour:02d}:00 UTC"


def detect_new_wallet_flood(fold: BatchFold) -> Optional[str]:
    wallet_count = len(fold.wallets)
    if wallet_count <= NEW_WALLET_MIN_WALLETS:
        return None
    fresh = sum(1 for w in fold.wallets.values() if w.tx_count <= NEW_WALLET_MAX_TXS)
    share = fresh / wallet_count
    if share <= NEW_WALLET_SHARE:
        return None
    return f"New wallet flood: {share * 100:.0f}% of {wallet_count} wallets made 2 or fewer transactions"


def detect_volume_spikes(fold: BatchFold) -> Optional[str]:
    if fold.timed_count <= SPIKE_MIN_SAMPLE or sum(fold.volumes) <= 0:
        return None
    # Batch is time-ordered by the caller, so the ends bound the period
    first, last = fold.timestamps[0], fold.timestamps[-1]
    span = last - first
    if span <= 0:
        return None
    offsets = np.asarray(fold.timestamps, dtype=np.int64) - first
    if (offsets < 0).any():
        logging.debug("volume spikes: batch is not in time order")
        return None
    slices = np.minimum(offsets * SPIKE_SLICES // span, SPIKE_SLICES - 1)
    slice_volumes = np.bincount(slices, weights=np.asarray(fold.volumes, dtype=float), minlength=SPIKE_SLICES)
    average = slice_volumes.mean()
    peak = slice_volumes.max()
    if average <= 0 or peak <= SPIKE_MULTIPLE * average:
        return None
    return f"Volume spike: one tenth of the period carried {peak / average:.1f}x the average slice volume"


def detect_bot_sizing(fold: BatchFold) -> Optional[str]:
    sized = [v for v in fold.usd_volumes if v > 0]
    if len(sized) <= BOT_MIN_SIZED:
        return None
    bucket, count = Counter(math.floor(v / BOT_BUCKET_USD + 0.5) for v in sized).most_common(1)[0]
    share = count / len(sized)
    if share <= BOT_SHARE:
        return None
    return f"Bot-like sizing: {share * 100:.0f}% of trades cluster around ${bucket * BOT_BUCKET_USD:,}"


HEURISTICS: Sequence[Callable[[BatchFold], Optional[str]]] = (
    detect_wash_trading,
    detect_whale_concentration,
    detect_imbalance,
    detect_rapid_cycling,
    detect_large_outliers,
    detect_temporal_clustering,
    detect_new_wallet_flood,
    detect_volume_spikes,
    detect_bot_sizing,
)


def analyze(swaps: Sequence[ParsedSwap]) -> TransactionSummary:
    """Summarise a batch of swaps already ordered by timestamp."""
    fold = BatchFold()
    for swap in swaps:
        fold.add(swap)

    patterns = []
    for heuristic in HEURISTICS:
        finding = heuristic(fold)
        if finding:
            patterns.append(finding)
        else:
            logging.debug("%s: nothing to report", heuristic.__name__)

    ranked = sorted(fold.wallets.values(), key=lambda w: (-w.total_volume, w.address))
    top_wallets = tuple(
        WalletActivity(
            address=w.address,
            tx_count=w.tx_count,
            buy_count=w.buy_count,
            sell_count=w.sell_count,
            total_volume=w.total_volume,
            volume_share=(w.total_volume / fold.total_volume * 100) if fold.total_volume else 0.0,
            first_seen=w.first_seen,
            last_seen=w.last_seen,
        )
        for w in ranked[:TOP_WALLETS]
    )
    top_traders = tuple(
        TraderActivity(address=w.address, buy_count=w.buy_count, sell_count=w.sell_count, volume=w.total_volume)
        for w in ranked[:TOP_TRADERS]
    )

    summary = (
        f"Analyzed {fold.total_count} transactions: {fold.buy_count} buys, "
        f"{fold.sell_count} sells, {len(fold.wallets)} unique wallets"
    )
    if patterns:
        summary += f", {len(patterns)} suspicious patterns"

    time_range = (fold.earliest, fold.latest) if fold.earliest is not None else None
    return TransactionSummary(
        total_count=fold.total_count,
        buy_count=fold.buy_count,
        sell_count=fold.sell_count,
        unique_wallets=len(fold.wallets),
        top_wallets=top_wallets,
        top_traders=top_traders,
        suspicious_patterns=tuple(patterns),
        time_range=time_range,
        summary=summary,
    )


SWAP_COLUMNS = ["signature", "timestamp", "wallet", "direction", "amount_in", "amount_out", "amount_usd"]


def swaps_to_frame(swaps: Sequence[ParsedSwap]) -> pd.DataFrame:
    df = pd.DataFrame([asdict(s) for s in swaps], columns=SWAP_COLUMNS)
    if df.empty:
        return df
    df["direction"] = df["direction"].map(lambda d: d.value)
    df["block_time"] = pd.to_datetime(df["timestamp"], unit="s", utc=True)
    return df
