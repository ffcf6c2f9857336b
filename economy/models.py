"""Domain models for the coin ledger."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, List, Mapping, Optional


@dataclass(slots=True)
class TransferRecord:
    """One entry of an account's grant history."""

    counterparty_id: str
    counterparty_name: str
    amount: int
    ts: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TransferRecord":
        return cls(
            counterparty_id=str(data["counterparty_id"]),
            counterparty_name=str(data.get("counterparty_name", "")),
            amount=int(data["amount"]),
            ts=str(data["ts"]),
        )


@dataclass(slots=True)
class UserAccount:
    """Per-user ledger record."""

    user_id: str
    balance: int = 0
    given_total: int = 0
    received_total: int = 0
    earn_given: List[TransferRecord] = field(default_factory=list)
    earn_received: List[TransferRecord] = field(default_factory=list)
    last_grant_at: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "balance": self.balance,
            "given_total": self.given_total,
            "received_total": self.received_total,
            "earn_given": [record.to_dict() for record in self.earn_given],
            "earn_received": [record.to_dict() for record in self.earn_received],
            "last_grant_at": self.last_grant_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserAccount":
        last_grant_at = data.get("last_grant_at")
        return cls(
            user_id=str(data["user_id"]),
            balance=int(data["balance"]),
            given_total=int(data["given_total"]),
            received_total=int(data["received_total"]),
            earn_given=[TransferRecord.from_dict(item) for item in data["earn_given"]],
            earn_received=[TransferRecord.from_dict(item) for item in data["earn_received"]],
            last_grant_at=int(last_grant_at) if last_grant_at is not None else None,
        )


@dataclass(slots=True)
class GrantLogEntry:
    """Audit line written for every privileged grant."""

    granter_id: str
    granter_name: str
    target_id: str
    target_name: str
    amount: int
    ts: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class BalanceView:
    """Read-only snapshot returned by balance lookups."""

    user_id: str
    balance: int
    given_total: int
    received_total: int

    @classmethod
    def of(cls, account: UserAccount) -> "BalanceView":
        return cls(
            user_id=account.user_id,
            balance=account.balance,
            given_total=account.given_total,
            received_total=account.received_total,
        )


__all__ = ["BalanceView", "GrantLogEntry", "TransferRecord", "UserAccount"]
