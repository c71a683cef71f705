"""Command-line entry point for pool inspection and swap analytics."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List

import httpx

from . import config
from .detector import detect
from .errors import PoolScopeError
from .ledger import SolanaLedger, fetch_account
from .models import PoolMints, to_serializable
from .patterns import analyze, swaps_to_frame
from .prices import CoinGeckoPriceFeed
from .reserves import analyze_pool
from .swaps import classify_swaps, price_swaps
from .tx_adapters import ADAPTERS
from .wallet_profiler import profile_wallets


def emit(payload: Any, output: Path | None = None) -> None:
    text = json.dumps(to_serializable(payload), indent=2)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text)
        logging.info("Wrote %s", output)
    print(text)


def load_transactions(path: Path) -> List[Dict]:
    if not path.exists():
        raise FileNotFoundError(f"Transaction file not found: {path}")
    with path.open() as fh:
        payload = json.load(fh)
    if isinstance(payload, dict):
        payload = payload.get("transactions") or payload.get("result") or []
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of transactions in {path}")
    return payload


async def run_detect(args: argparse.Namespace) -> None:
    ledger = SolanaLedger.connect(args.rpc)
    try:
        account = await fetch_account(ledger, args.address)
    finally:
        await ledger.close()
    emit(detect(account.data, address=args.address, allow_size_drift=not args.strict))


async def run_pool(args: argparse.Namespace) -> None:
    ledger = SolanaLedger.connect(args.rpc)
    try:
        if args.no_prices:
            report = await analyze_pool(args.address, ledger, allow_size_drift=not args.strict)
        else:
            async with httpx.AsyncClient(timeout=config.RPC_TIMEOUT) as http:
                report = await analyze_pool(
                    args.address,
                    ledger,
                    price_feed=CoinGeckoPriceFeed(http),
                    allow_size_drift=not args.strict,
                )
    finally:
        await ledger.close()
    emit(report, args.output)


async def run_profiles(args: argparse.Namespace, summary) -> List:
    ledger = SolanaLedger.connect(args.rpc)
    try:
        return await profile_wallets(ledger, summary.top_wallets[: args.profile_top], summary.total_count)
    finally:
        await ledger.close()


def cmd_detect(args: argparse.Namespace) -> None:
    asyncio.run(run_detect(args))


def cmd_pool(args: argparse.Namespace) -> None:
    asyncio.run(run_pool(args))


def cmd_swaps(args: argparse.Namespace) -> None:
    transactions = load_transactions(args.input)
    adapter = ADAPTERS[args.shape]
    mints = PoolMints(args.mint_a, args.mint_b)
    swaps = classify_swaps((adapter(tx) for tx in transactions), mints)
    if args.quote_price is not None:
        swaps = price_swaps(swaps, Decimal(args.quote_price), args.quote_decimals)

    summary = analyze(swaps)
    logging.info("%s", summary.summary)

    args.csv.parent.mkdir(parents=True, exist_ok=True)
    swaps_to_frame(swaps).to_csv(args.csv, index=False)
    logging.info("Wrote %d swaps to %s", len(swaps), args.csv)

    payload: Dict[str, Any] = {"summary": summary}
    if args.profile_top:
        payload["wallet_profiles"] = asyncio.run(run_profiles(args, summary))
    emit(payload, args.output)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Solana AMM pool decoder and swap analytics")
    parser.add_argument("--rpc", default=config.RPC_ENDPOINTS[0], help="RPC endpoint to use")
    parser.add_argument("--verbose", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)

    detect_cmd = sub.add_parser("detect", help="Classify a pool account by protocol")
    detect_cmd.add_argument("address", help="Pool account address")
    detect_cmd.add_argument("--strict", action="store_true", help="Disable the V4 size-drift fallback")
    detect_cmd.set_defaults(func=cmd_detect)

    pool = sub.add_parser("pool", help="Decode a pool and report reserves and health")
    pool.add_argument("address", help="Pool account address")
    pool.add_argument("--output", type=Path, help="Optional JSON destination")
    pool.add_argument("--no-prices", action="store_true", help="Skip USD valuation")
    pool.add_argument("--strict", action="store_true", help="Disable the V4 size-drift fallback")
    pool.set_defaults(func=cmd_pool)

    swaps = sub.add_parser("swaps", help="Classify transactions and summarise trading patterns")
    swaps.add_argument("input", type=Path, help="JSON list of transactions")
    swaps.add_argument("--mint-a", required=True)
    swaps.add_argument("--mint-b", required=True)
    swaps.add_argument("--shape", choices=sorted(ADAPTERS), default="enhanced", help="Upstream transaction shape")
    swaps.add_argument("--quote-price", help="USD price of the quote token, enables USD heuristics")
    swaps.add_argument("--quote-decimals", type=int, default=9)
    swaps.add_argument(
        "--csv",
        type=Path,
        default=Path(config.PROCESSED_DATA_DIR) / "swaps.csv",
        help="Destination CSV for classified swaps",
    )
    swaps.add_argument(
        "--output",
        type=Path,
        default=Path(config.PROCESSED_DATA_DIR) / "swap_summary.json",
    )
    swaps.add_argument("--profile-top", type=int, default=0, help="Profile the K highest-volume wallets")
    swaps.set_defaults(func=cmd_swaps)

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )
    try:
        args.func(args)
    except PoolScopeError as exc:
        logging.error("%s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
