"""Swap direction classification from wallet balance deltas."""
from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Collection, Iterable, List, Optional

from . import config
from .models import BalanceDeltaRecord, Direction, ParsedSwap, PoolMints, TokenDelta, scale_amount

DUST_THRESHOLD = Decimal("0.000001")
SOL_DECIMALS = 9


def traded_mint(mints: PoolMints) -> str:
    """The pool token whose acquisition counts as a buy: the non-quote side when there is one."""
    if mints.token_a in config.QUOTE_MINTS and mints.token_b not in config.QUOTE_MINTS:
        return mints.token_b
    return mints.token_a


def counter_mint(mints: PoolMints) -> str:
    return mints.token_b if traded_mint(mints) == mints.token_a else mints.token_a


def _significant(delta: Optional[TokenDelta]) -> Optional[TokenDelta]:
    if delta is None or abs(delta.ui_amount) < DUST_THRESHOLD:
        return None
    return delta


def _counter_amount(record: BalanceDeltaRecord, mint: str) -> int:
    delta = _significant(record.delta_for(mint))
    if delta is not None:
        return delta.raw_amount
    # Native SOL swaps settle in lamports rather than through a wSOL account
    if mint == config.WSOL_MINT and abs(scale_amount(record.native_delta, SOL_DECIMALS)) >= DUST_THRESHOLD:
        return record.native_delta
    return 0


def classify_swap(
    record: Optional[BalanceDeltaRecord],
    mints: PoolMints,
    dex_programs: Optional[Collection[str]] = None,
) -> Optional[ParsedSwap]:
    """Return the wallet's swap against this pool, or None when the record is not one.

    Direction always comes from token balance deltas: a buy increases the wallet's
    traded-token balance, a sell decreases it. When the traded token did not move,
    the counter token's token-account delta decides. Native lamport movements only
    fill in amounts.
    """
    if record is None:
        return None
    if dex_programs is not None and not any(p in dex_programs for p in record.program_ids):
        return None

    target = traded_mint(mints)
    other = counter_mint(mints)
    target_delta = _significant(record.delta_for(target))

    if target_delta is not None:
        direction = Direction.BUY if target_delta.raw_amount > 0 else Direction.SELL
    else:
        other_delta = _significant(record.delta_for(other))
        if other_delta is None:
            logging.debug("No in-pair balance change in %s", record.signature)
            return None
        direction = Direction.BUY if other_delta.raw_amount < 0 else Direction.SELL

    target_raw = target_delta.raw_amount if target_delta is not None else 0
    other_raw = _counter_amount(record, other)
    if direction is Direction.BUY:
        amount_in, amount_out = max(-other_raw, 0), max(target_raw, 0)
    else:
        amount_in, amount_out = max(-target_raw, 0), max(other_raw, 0)

    return ParsedSwap(
        signature=record.signature,
        timestamp=record.timestamp,
        wallet=record.wallet,
        direction=direction,
        amount_in=amount_in,
        amount_out=amount_out,
    )


def classify_swaps(
    records: Iterable[Optional[BalanceDeltaRecord]],
    mints: PoolMints,
    dex_programs: Optional[Collection[str]] = None,
) -> List[ParsedSwap]:
    """Classify a batch, drop non-swaps and duplicates, and order by time for analysis."""
    swaps = {}
    skipped = 0
    for record in records:
        swap = classify_swap(record, mints, dex_programs=dex_programs)
        if swap is None:
            skipped += 1
            continue
        swaps.setdefault(swap.signature, swap)
    ordered = sorted(swaps.values(), key=lambda s: (s.timestamp, s.signature))
    logging.info("Classified %d swaps (%d records skipped)", len(ordered), skipped)
    return ordered


def price_swaps(
    swaps: Iterable[ParsedSwap],
    quote_price_usd: Decimal,
    quote_decimals: int,
) -> List[ParsedSwap]:
    """Attach USD volume using the counter (quote) side of each swap."""
    priced = []
    for swap in swaps:
        quote_raw = swap.amount_in if swap.direction is Direction.BUY else swap.amount_out
        usd = scale_amount(quote_raw, quote_decimals) * Decimal(str(quote_price_usd))
        priced.append(replace(swap, amount_usd=float(usd)))
    return priced
