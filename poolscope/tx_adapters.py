"""Adapters mapping upstream transaction shapes onto BalanceDeltaRecord.

Two upstream shapes are supported:

* ``from_rpc_transaction``: a ``getTransaction`` result (json or jsonParsed) with
  pre/post token balance snapshots.
* ``from_enhanced_transaction``: an indexer's enhanced transaction carrying
  pre-aggregated ``accountData[].tokenBalanceChanges``.

Both keep only balance changes owned by the signing wallet. Failed transactions
yield ``None``.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .models import BalanceDeltaRecord, TokenDelta


def normalise_account_keys(account_keys: List) -> List[str]:
    normalised: List[str] = []
    for entry in account_keys:
        if isinstance(entry, str):
            normalised.append(entry)
        elif isinstance(entry, dict):
            normalised.append(entry.get("pubkey", ""))
        else:
            normalised.append(str(entry))
    return normalised


def _collect_deltas(changes: Iterable[Tuple[str, int, int]]) -> Tuple[TokenDelta, ...]:
    totals: Dict[str, List[int]] = {}
    for mint, amount, decimals in changes:
        entry = totals.setdefault(mint, [0, decimals])
        entry[0] += amount
    return tuple(TokenDelta(mint, amount, decimals) for mint, (amount, decimals) in totals.items() if amount)


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(v for v in values if v))


def _snapshot_changes(meta: Dict, wallet: str) -> Iterable[Tuple[str, int, int]]:
    for key, sign in (("preTokenBalances", -1), ("postTokenBalances", 1)):
        for balance in meta.get(key) or []:
            if balance.get("owner") != wallet:
                continue
            ui_amount = balance.get("uiTokenAmount") or {}
            yield balance.get("mint", ""), sign * int(ui_amount.get("amount") or 0), int(ui_amount.get("decimals") or 0)


def _rpc_program_ids(message: Dict, meta: Dict, account_keys: List[str], signature: str) -> Iterable[str]:
    instructions = list(message.get("instructions") or [])
    for inner in meta.get("innerInstructions") or []:
        instructions.extend(inner.get("instructions") or [])
    for instruction in instructions:
        if "programId" in instruction:
            yield instruction["programId"]
            continue
        program_index = instruction.get("programIdIndex")
        if program_index is None:
            continue
        try:
            yield account_keys[program_index]
        except IndexError:
            logging.debug("Program index out of bounds for tx %s", signature)


def from_rpc_transaction(tx: Dict) -> Optional[BalanceDeltaRecord]:
    meta = tx.get("meta") or {}
    if meta.get("err") is not None:
        return None

    transaction = tx.get("transaction") or {}
    message = transaction.get("message") or {}
    account_keys = normalise_account_keys(message.get("accountKeys") or [])
    loaded = meta.get("loadedAddresses") or {}
    account_keys += list(loaded.get("writable") or []) + list(loaded.get("readonly") or [])
    if not account_keys:
        return None

    wallet = account_keys[0]
    signatures = transaction.get("signatures") or []
    signature = signatures[0] if signatures else ""

    native_delta = 0
    pre_balances = meta.get("preBalances") or []
    post_balances = meta.get("postBalances") or []
    if pre_balances and post_balances:
        native_delta = post_balances[0] - pre_balances[0] + int(meta.get("fee") or 0)

    return BalanceDeltaRecord(
        signature=signature,
        timestamp=int(tx.get("blockTime") or 0),
        wallet=wallet,
        token_deltas=_collect_deltas(_snapshot_changes(meta, wallet)),
        native_delta=native_delta,
        program_ids=_unique(_rpc_program_ids(message, meta, account_keys, signature)),
    )


def _enhanced_changes(tx: Dict, wallet: str) -> Iterable[Tuple[str, int, int]]:
    for account in tx.get("accountData") or []:
        for change in account.get("tokenBalanceChanges") or []:
            if change.get("userAccount") != wallet:
                continue
            raw = change.get("rawTokenAmount") or {}
            yield change.get("mint", ""), int(raw.get("tokenAmount") or 0), int(raw.get("decimals") or 0)


def _enhanced_program_ids(tx: Dict) -> Iterable[str]:
    for instruction in tx.get("instructions") or []:
        yield instruction.get("programId", "")
        for inner in instruction.get("innerInstructions") or []:
            yield inner.get("programId", "")


def from_enhanced_transaction(tx: Dict) -> Optional[BalanceDeltaRecord]:
    if tx.get("transactionError"):
        return None
    wallet = tx.get("feePayer") or ""
    if not wallet:
        return None

    native_delta = 0
    for account in tx.get("accountData") or []:
        if account.get("account") == wallet:
            native_delta = int(account.get("nativeBalanceChange") or 0) + int(tx.get("fee") or 0)
            break

    return BalanceDeltaRecord(
        signature=tx.get("signature", ""),
        timestamp=int(tx.get("timestamp") or 0),
        wallet=wallet,
        token_deltas=_collect_deltas(_enhanced_changes(tx, wallet)),
        native_delta=native_delta,
        program_ids=_unique(_enhanced_program_ids(tx)),
    )


ADAPTERS = {
    "rpc": from_rpc_transaction,
    "enhanced": from_enhanced_transaction,
}
