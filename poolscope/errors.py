"""Typed failures raised by the decoding and analysis core."""
from __future__ import annotations


class PoolScopeError(Exception):
    """Base class for every poolscope failure."""


class AccountNotFound(PoolScopeError):
    def __init__(self, address: str):
        super().__init__(f"Account {address} not found")
        self.address = address


class DecodeError(PoolScopeError):
    """A pool account could not be turned into a ParsedPool."""


class UnrecognizedStructure(DecodeError):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class TruncatedAccountData(DecodeError):
    def __init__(self, variant: str, required: int, actual: int):
        super().__init__(f"{variant} layout needs {required} bytes, got {actual}")
        self.variant = variant
        self.required = required
        self.actual = actual


class StructuralValidationFailure(DecodeError):
    def __init__(self, variant: str, reason: str):
        super().__init__(f"{variant}: {reason}")
        self.variant = variant
        self.reason = reason


class LedgerUnavailable(PoolScopeError):
    """The ledger RPC transport failed."""


class PoolUnavailable(PoolScopeError):
    def __init__(self, address: str, reason: str):
        super().__init__(f"Reserves for {address} unavailable: {reason}")
        self.address = address
        self.reason = reason


class PriceUnavailable(PoolScopeError):
    def __init__(self, symbol: str, reason: str = "no price"):
        super().__init__(f"USD price for {symbol} unavailable: {reason}")
        self.symbol = symbol
