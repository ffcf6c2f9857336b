"""Exceptions raised by the coin ledger."""
from __future__ import annotations


class LedgerError(Exception):
    """Base class for every ledger failure."""


class StorageError(LedgerError):
    """Record storage is unreadable, corrupt or not writable."""


class InsufficientFunds(LedgerError):
    def __init__(self, balance: int, requested: int) -> None:
        self.balance = balance
        self.requested = requested
        super().__init__(f"insufficient balance: have {balance}, need {requested}")


class InvalidTarget(LedgerError):
    """Self-transfer, bot recipient or non-positive amount."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class CooldownActive(LedgerError):
    def __init__(self, remaining_millis: int) -> None:
        self.remaining_millis = remaining_millis
        super().__init__(f"cooldown active for another {remaining_millis} ms")


__all__ = [
    "CooldownActive",
    "InsufficientFunds",
    "InvalidTarget",
    "LedgerError",
    "StorageError",
]
