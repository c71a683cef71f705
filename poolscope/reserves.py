"""Reserve resolution, TVL and the presentation-facing AdjustedReserves."""
from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Awaitable, Mapping, Optional

from . import config
from .decoders import decode
from .detector import detect
from .errors import AccountNotFound, PoolScopeError, PoolUnavailable, PriceUnavailable
from .health import evaluate_health
from .layouts import layout_for
from .ledger import LedgerClient, fetch_account, parse_mint_decimals
from .models import AdjustedReserves, ParsedPool, PoolHealth, PoolReport, PoolReserves, PoolVariant
from .prices import PriceFeed

BONDING_CURVE_FEE_DISPLAY = "1.0% (Pump.fun standard)"


async def _known(value: int) -> int:
    return value


async def _vault_balance(ledger: LedgerClient, vault: str) -> int:
    balance = await ledger.get_token_account_balance(vault)
    if balance is None:
        raise AccountNotFound(vault)
    return balance


async def _mint_decimals(ledger: LedgerClient, mint: str) -> int:
    known = config.KNOWN_TOKENS.get(mint)
    if known:
        return known[1]
    account = await ledger.get_account_bytes(mint)
    if account is None:
        raise AccountNotFound(mint)
    return parse_mint_decimals(account.data)


def _decimals_lookup(ledger: LedgerClient, mint: str, decimals: Optional[int]) -> Awaitable[int]:
    if decimals is not None:
        return _known(decimals)
    return _mint_decimals(ledger, mint)


async def resolve_reserves(pool: ParsedPool, ledger: LedgerClient, pool_address: str = "<pool>") -> PoolReserves:
    """Read both reserves, concurrently when they live in vault accounts.

    Any failed lookup raises PoolUnavailable; no partial reserves are returned.
    """
    layout = layout_for(pool.variant)
    if layout.reserves_embedded:
        token_a_raw, token_b_raw = pool.embedded_reserves
        return PoolReserves(token_a_raw, token_b_raw, pool.token_a_decimals, pool.token_b_decimals)

    results = await asyncio.gather(
        _vault_balance(ledger, pool.token_a_vault),
        _vault_balance(ledger, pool.token_b_vault),
        _decimals_lookup(ledger, pool.token_a_mint, pool.token_a_decimals),
        _decimals_lookup(ledger, pool.token_b_mint, pool.token_b_decimals),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, (PoolScopeError, ValueError)):
            raise PoolUnavailable(pool_address, str(result)) from result
        if isinstance(result, BaseException):
            raise result

    token_a_raw, token_b_raw, token_a_decimals, token_b_decimals = results
    logging.debug("Resolved reserves for %s: %s / %s", pool_address, token_a_raw, token_b_raw)
    return PoolReserves(token_a_raw, token_b_raw, token_a_decimals, token_b_decimals)


def token_symbol(mint: str, symbols: Optional[Mapping[str, str]] = None) -> str:
    if symbols and mint in symbols:
        return symbols[mint]
    known = config.KNOWN_TOKENS.get(mint)
    if known:
        return known[0]
    return f"{mint[:4]}...{mint[-4:]}"


def format_fee(pool: ParsedPool) -> str:
    if pool.variant is PoolVariant.BONDING_CURVE:
        return BONDING_CURVE_FEE_DISPLAY
    places = layout_for(pool.variant).fee_display_places
    return f"{pool.fee_percent:.{places}f}%"


async def compute_tvl(
    reserves: PoolReserves,
    token_a_symbol: str,
    token_b_symbol: str,
    price_feed: PriceFeed,
) -> Optional[Decimal]:
    """Sum of the priced legs; None when nothing could be priced."""
    total = Decimal(0)
    priced = 0
    for symbol, amount in ((token_a_symbol, reserves.token_a_amount), (token_b_symbol, reserves.token_b_amount)):
        try:
            price = await price_feed.get_usd_price(symbol)
        except PriceUnavailable as exc:
            logging.warning("%s", exc)
            continue
        total += amount * price
        priced += 1
    if not priced or total == 0:
        return None
    return total


def build_adjusted_reserves(
    pool: ParsedPool,
    reserves: PoolReserves,
    health: PoolHealth,
    symbols: Optional[Mapping[str, str]] = None,
    tvl_usd: Optional[Decimal] = None,
) -> AdjustedReserves:
    pool_status = health.status_text
    if health.issues:
        pool_status = f"{health.status_text} - {'; '.join(health.issues)}"
    return AdjustedReserves(
        token_a_mint=pool.token_a_mint,
        token_b_mint=pool.token_b_mint,
        token_a_amount=reserves.token_a_amount,
        token_b_amount=reserves.token_b_amount,
        token_a_symbol=token_symbol(pool.token_a_mint, symbols),
        token_b_symbol=token_symbol(pool.token_b_mint, symbols),
        pool_type=layout_for(pool.variant).display_name,
        pool_status=pool_status,
        fee_display=format_fee(pool),
        lp_mint=pool.lp_mint,
        lp_supply=pool.lp_supply,
        tvl_usd=tvl_usd,
    )


async def analyze_pool(
    address: str,
    ledger: LedgerClient,
    price_feed: Optional[PriceFeed] = None,
    symbols: Optional[Mapping[str, str]] = None,
    allow_size_drift: bool = True,
) -> PoolReport:
    """Fetch, detect, decode, resolve and evaluate one pool account."""
    account = await fetch_account(ledger, address)
    detection = detect(account.data, address=address, allow_size_drift=allow_size_drift)
    logging.info("%s: %s (%s confidence)", address, detection.variant.value, detection.confidence.value)
    pool = decode(detection, account.data)
    reserves = await resolve_reserves(pool, ledger, pool_address=address)
    health = evaluate_health(pool, reserves)

    tvl_usd = None
    if price_feed is not None:
        tvl_usd = await compute_tvl(
            reserves,
            token_symbol(pool.token_a_mint, symbols),
            token_symbol(pool.token_b_mint, symbols),
            price_feed,
        )
    adjusted = build_adjusted_reserves(pool, reserves, health, symbols=symbols, tvl_usd=tvl_usd)
    return PoolReport(address=address, detection=detection, pool=pool, health=health, reserves=adjusted)
