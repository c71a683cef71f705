"""Ledger RPC collaborator: the contract the core consumes and a solana-py adapter."""
from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from construct import Bytes, ConstructError, Flag, Int8ul, Int32ul, Int64ul, Struct
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.core import RPCException
from solders.pubkey import Pubkey

from . import config
from .errors import AccountNotFound, LedgerUnavailable
from .models import RawAccount

# SPL token program account layouts (only the leading fields we read)
TOKEN_ACCOUNT_LAYOUT = Struct(
    "mint" / Bytes(32),
    "owner" / Bytes(32),
    "amount" / Int64ul,
)

MINT_LAYOUT = Struct(
    "mint_authority_option" / Int32ul,
    "mint_authority" / Bytes(32),
    "supply" / Int64ul,
    "decimals" / Int8ul,
    "is_initialized" / Flag,
)


class LedgerClient(Protocol):
    async def get_account_bytes(self, address: str) -> Optional[RawAccount]:
        ...

    async def get_token_account_balance(self, address: str) -> Optional[int]:
        ...


class SignatureSource(Protocol):
    async def get_signature_times(self, address: str, limit: int) -> List[Optional[int]]:
        ...


def parse_token_amount(data: bytes) -> int:
    try:
        return TOKEN_ACCOUNT_LAYOUT.parse(data).amount
    except ConstructError as exc:
        raise ValueError(f"Not an SPL token account ({len(data)} bytes)") from exc


def parse_mint_decimals(data: bytes) -> int:
    try:
        return MINT_LAYOUT.parse(data).decimals
    except ConstructError as exc:
        raise ValueError(f"Not an SPL mint account ({len(data)} bytes)") from exc


async def fetch_account(ledger: LedgerClient, address: str) -> RawAccount:
    account = await ledger.get_account_bytes(address)
    if account is None:
        raise AccountNotFound(address)
    return account


class SolanaLedger:
    """LedgerClient backed by a solana-py AsyncClient owned by the caller."""

    def __init__(self, client: AsyncClient):
        self.client = client

    @classmethod
    def connect(cls, rpc: Optional[str] = None, timeout: float = config.RPC_TIMEOUT) -> "SolanaLedger":
        return cls(AsyncClient(rpc or config.RPC_ENDPOINTS[0], timeout=timeout))

    async def close(self) -> None:
        await self.client.close()

    async def get_account_bytes(self, address: str) -> Optional[RawAccount]:
        pubkey = Pubkey.from_string(address)
        logging.debug("Fetching account %s", address)
        try:
            response = await self.client.get_account_info(pubkey, encoding="base64")
        except (SolanaRpcException, RPCException) as exc:
            raise LedgerUnavailable(f"get_account_info({address}) failed: {exc}") from exc
        if response.value is None:
            return None
        return RawAccount(address=address, data=bytes(response.value.data))

    async def get_token_account_balance(self, address: str) -> Optional[int]:
        account = await self.get_account_bytes(address)
        if account is None:
            return None
        return parse_token_amount(account.data)

    async def get_signature_times(self, address: str, limit: int = config.WALLET_HISTORY_LIMIT) -> List[Optional[int]]:
        pubkey = Pubkey.from_string(address)
        try:
            response = await self.client.get_signatures_for_address(pubkey, limit=limit)
        except (SolanaRpcException, RPCException) as exc:
            raise LedgerUnavailable(f"get_signatures_for_address({address}) failed: {exc}") from exc
        return [entry.block_time for entry in response.value]
