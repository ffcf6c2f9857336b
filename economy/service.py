"""Balance operations for the coin ledger.

Every operation validates fully before the first write, so a domain error
(:class:`InvalidTarget`, :class:`InsufficientFunds`, :class:`CooldownActive`)
never leaves a partial update behind. Two-account operations save the
accounts one after the other; a :class:`StorageError` between the two saves
is logged and re-raised without rollback.
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, List, Optional, Tuple

from economy.errors import CooldownActive, InsufficientFunds, InvalidTarget, StorageError
from economy.models import BalanceView, GrantLogEntry, TransferRecord, UserAccount
from economy.store import RecordStore

log = logging.getLogger("economy")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _require_positive(amount: int) -> None:
    if amount <= 0:
        raise InvalidTarget("amount must be positive")


class LedgerService:
    def __init__(self, store: RecordStore, *, clock: Callable[[], dt.datetime] = _utcnow) -> None:
        self.store = store
        self._clock = clock

    def _save_pair(self, op: str, first: UserAccount, second: UserAccount) -> None:
        self.store.save(first)
        try:
            self.store.save(second)
        except StorageError:
            log.error(
                "%s partially applied: uid=%s saved, uid=%s not saved",
                op,
                first.user_id,
                second.user_id,
            )
            raise

    def grant(
        self,
        granter_id: str,
        target_id: str,
        amount: int,
        *,
        granter_name: str = "",
        target_name: str = "",
        target_is_bot: bool = False,
    ) -> Tuple[UserAccount, UserAccount]:
        """Credit ``target_id`` on behalf of a privileged ``granter_id``.

        Returns ``(target, granter)``. Authorization is the caller's job.
        """

        _require_positive(amount)
        if target_is_bot:
            raise InvalidTarget("cannot grant coins to a bot")

        ts = self._clock().isoformat()
        target = self.store.load(target_id)
        granter = target if granter_id == target_id else self.store.load(granter_id)

        target.balance += amount
        target.received_total += amount
        target.earn_received.append(
            TransferRecord(counterparty_id=granter_id, counterparty_name=granter_name, amount=amount, ts=ts)
        )
        granter.given_total += amount
        granter.earn_given.append(
            TransferRecord(counterparty_id=target_id, counterparty_name=target_name, amount=amount, ts=ts)
        )

        if granter is target:
            self.store.save(target)
        else:
            self._save_pair("grant", target, granter)

        entry = GrantLogEntry(
            granter_id=granter_id,
            granter_name=granter_name,
            target_id=target_id,
            target_name=target_name,
            amount=amount,
            ts=ts,
        )
        try:
            self.store.append_grant_log(entry)
        except StorageError:
            log.error(
                "grant partially applied: accounts saved, grant log not written from=%s to=%s amount=%s",
                granter_id,
                target_id,
                amount,
            )
            raise
        log.info("grant from=%s to=%s amount=%s balance=%s", granter_id, target_id, amount, target.balance)
        return target, granter

    def get_balance(self, user_id: str) -> BalanceView:
        return BalanceView.of(self.store.load(user_id))

    def transfer(
        self,
        payer_id: str,
        payee_id: str,
        amount: int,
        *,
        payee_is_bot: bool = False,
    ) -> Tuple[UserAccount, UserAccount]:
        """Move ``amount`` coins from payer to payee. Returns ``(payer, payee)``."""

        _require_positive(amount)
        if payer_id == payee_id:
            raise InvalidTarget("cannot transfer to self")
        if payee_is_bot:
            raise InvalidTarget("cannot transfer to a bot")

        payer = self.store.load(payer_id)
        if payer.balance < amount:
            raise InsufficientFunds(payer.balance, amount)
        payee = self.store.load(payee_id)

        payer.balance -= amount
        payee.balance += amount
        self._save_pair("transfer", payer, payee)

        log.info("transfer from=%s to=%s amount=%s", payer_id, payee_id, amount)
        return payer, payee

    def claim_daily_grant(
        self,
        user_id: str,
        now: int,
        grant_amount: int,
        cooldown_millis: int,
    ) -> UserAccount:
        """Credit the repeatable grant unless the cooldown since the last claim is running."""

        _require_positive(grant_amount)
        account = self.store.load(user_id)
        if account.last_grant_at is not None:
            ready_at = account.last_grant_at + cooldown_millis
            if now < ready_at:
                raise CooldownActive(ready_at - now)

        account.balance += grant_amount
        account.last_grant_at = now
        self.store.save(account)
        log.info("daily grant uid=%s amount=%s balance=%s", user_id, grant_amount, account.balance)
        return account

    def reset_balance(self, user_id: str) -> UserAccount:
        account = self.store.load(user_id)
        previous = account.balance
        account.balance = 0
        self.store.save(account)
        log.info("balance reset uid=%s previous=%s", user_id, previous)
        return account

    def history(self, user_id: str, limit: int = 5) -> List[Tuple[str, TransferRecord]]:
        """Return the latest grant records as ``(direction, record)``, newest first.

        ``direction`` is ``"in"`` for received and ``"out"`` for given grants.
        """

        account = self.store.load(user_id)
        tagged = [("in", record) for record in account.earn_received]
        tagged.extend(("out", record) for record in account.earn_given)
        # ISO timestamps in UTC sort lexicographically
        tagged.sort(key=lambda item: item[1].ts, reverse=True)
        return tagged[: max(limit, 0)]


def millis(ts: Optional[dt.datetime] = None) -> int:
    """Epoch milliseconds for ``ts`` (defaults to now)."""

    ts = ts or _utcnow()
    return int(ts.timestamp() * 1000)


__all__ = ["LedgerService", "millis"]
