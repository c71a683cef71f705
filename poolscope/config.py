"""Shared configuration for poolscope."""
from __future__ import annotations

import os
from typing import Dict, List, Tuple

RAYDIUM_AMM_V4_PROGRAM_ID = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"
RAYDIUM_CLMM_PROGRAM_ID = "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK"
ORCA_WHIRLPOOL_PROGRAM_ID = "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc"
METEORA_DLMM_PROGRAM_ID = "LBUZKhRxPF3XUpBCjp4YzTKgLccjZhTSDM9YuVaPwxo"
PUMPFUN_PROGRAM_ID = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
JUPITER_V6_PROGRAM_ID = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"

DEX_PROGRAM_IDS = frozenset(
    {
        RAYDIUM_AMM_V4_PROGRAM_ID,
        RAYDIUM_CLMM_PROGRAM_ID,
        ORCA_WHIRLPOOL_PROGRAM_ID,
        METEORA_DLMM_PROGRAM_ID,
        PUMPFUN_PROGRAM_ID,
        JUPITER_V6_PROGRAM_ID,
    }
)

DEFAULT_RPC_ENDPOINTS = [
    "https://api.mainnet-beta.solana.com",
    os.getenv("HELIUS_RPC_URL"),
    os.getenv("SOLANA_RPC_URL"),
]

# Filter out None / empty values while preserving order
RPC_ENDPOINTS: List[str] = [endpoint for endpoint in DEFAULT_RPC_ENDPOINTS if endpoint]

RPC_TIMEOUT = float(os.getenv("POOLSCOPE_RPC_TIMEOUT", "45"))

WSOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"

# mint -> (symbol, decimals)
KNOWN_TOKENS: Dict[str, Tuple[str, int]] = {
    WSOL_MINT: ("SOL", 9),
    USDC_MINT: ("USDC", 6),
    USDT_MINT: ("USDT", 6),
    "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R": ("RAY", 6),
    "orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE": ("ORCA", 6),
    "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN": ("JUP", 6),
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": ("BONK", 5),
}

QUOTE_MINTS = frozenset({WSOL_MINT, USDC_MINT, USDT_MINT})

COINGECKO_API_BASE = os.getenv("COINGECKO_API_BASE", "https://api.coingecko.com/api/v3")
COINGECKO_API_KEY = os.getenv("COINGECKO_API_KEY")
PRICE_CACHE_TTL = float(os.getenv("POOLSCOPE_PRICE_TTL", "60"))

COINGECKO_IDS: Dict[str, str] = {
    "SOL": "solana",
    "USDC": "usd-coin",
    "USDT": "tether",
    "RAY": "raydium",
    "ORCA": "orca",
    "JUP": "jupiter-exchange-solana",
    "BONK": "bonk",
    "WIF": "dogwifcoin",
    "PYTH": "pyth-network",
    "JTO": "jito-governance-token",
}

STABLE_SYMBOLS = frozenset({"USDC", "USDT"})

DATA_ROOT = os.path.join(os.path.dirname(__file__), "..", "data")
PROCESSED_DATA_DIR = os.path.join(DATA_ROOT, "processed")

DEFAULT_HEADERS = {"User-Agent": "poolscope/0.1"}

# Signatures pulled per wallet when profiling
WALLET_HISTORY_LIMIT = int(os.getenv("POOLSCOPE_WALLET_HISTORY_LIMIT", "1000"))
