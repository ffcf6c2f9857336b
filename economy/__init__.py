"""Coin ledger: record store, balance operations and leaderboard."""
from .errors import (
    CooldownActive,
    InsufficientFunds,
    InvalidTarget,
    LedgerError,
    StorageError,
)
from .models import BalanceView, GrantLogEntry, TransferRecord, UserAccount
from .ranking import RankingView
from .service import LedgerService, millis
from .store import RecordStore

__all__ = [
    "BalanceView",
    "CooldownActive",
    "GrantLogEntry",
    "InsufficientFunds",
    "InvalidTarget",
    "LedgerError",
    "LedgerService",
    "RankingView",
    "RecordStore",
    "StorageError",
    "TransferRecord",
    "UserAccount",
    "millis",
]
