"""File-backed record store for the coin ledger.

Layout under the data directory::

    accounts/<user_id>.json   one JSON document per account
    grant_log.json            JSON array of grant audit entries

Every write goes to a sibling ``.tmp`` file which is flushed, fsynced and
then renamed over the target, so a reader sees either the previous document
or the new one.

Account documents carry ``schema_version``. :meth:`RecordStore.load` upgrades
older documents through :data:`MIGRATIONS` one version at a time and saves the
result, so the rest of the ledger only ever sees the current shape.
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping

from economy.errors import StorageError
from economy.models import GrantLogEntry, UserAccount

log = logging.getLogger("economy.store")

SCHEMA_VERSION = 1

_ID_RE = re.compile(r"[A-Za-z0-9_-]{1,64}")


def _migrate_v0(user_id: str, raw: Any) -> dict[str, Any]:
    # v0 is either a bare coin count or a dict with some fields missing
    if isinstance(raw, bool) or not isinstance(raw, (int, dict)):
        raise StorageError(f"unrecognised legacy record for {user_id!r}")
    data: dict[str, Any] = {"balance": raw} if isinstance(raw, int) else dict(raw)
    data.setdefault("user_id", user_id)
    data.setdefault("balance", 0)
    data.setdefault("given_total", 0)
    data.setdefault("received_total", 0)
    data.setdefault("earn_given", [])
    data.setdefault("earn_received", [])
    data.setdefault("last_grant_at", None)
    data["schema_version"] = 1
    return data


# from_version -> upgrade to from_version + 1
MIGRATIONS: Dict[int, Callable[[str, Any], dict[str, Any]]] = {
    0: _migrate_v0,
}


def _schema_version(raw: Any) -> int:
    if isinstance(raw, dict):
        version = raw.get("schema_version", 0)
        if isinstance(version, int) and not isinstance(version, bool):
            return version
        raise StorageError(f"bad schema_version {version!r}")
    return 0


def _check_amounts(path: Path, account: UserAccount) -> None:
    for name in ("balance", "given_total", "received_total"):
        if getattr(account, name) < 0:
            raise StorageError(f"corrupt record {path}: negative {name}")
    for record in (*account.earn_given, *account.earn_received):
        if record.amount <= 0:
            raise StorageError(f"corrupt record {path}: non-positive grant amount {record.amount}")


def _write_atomic(path: Path, payload: Any) -> None:
    tmp_path = path.with_suffix(".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)
            fh.flush()
            os.fsync(fh.fileno())
        tmp_path.replace(path)
    except OSError as exc:
        raise StorageError(f"failed to write {path}: {exc}") from exc


def _read_json(path: Path) -> Any:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise StorageError(f"failed to read {path}: {exc}") from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StorageError(f"corrupt record {path}: {exc}") from exc


class RecordStore:
    """Get-or-default account storage plus the append-only grant log."""

    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir)
        self.accounts_dir = self.data_dir / "accounts"
        self.grant_log_path = self.data_dir / "grant_log.json"

    def _account_path(self, user_id: str) -> Path:
        if not _ID_RE.fullmatch(user_id):
            raise StorageError(f"invalid account id {user_id!r}")
        return self.accounts_dir / f"{user_id}.json"

    def load(self, user_id: str) -> UserAccount:
        """Return the stored account, creating and persisting a blank one if absent."""

        path = self._account_path(user_id)
        if not path.exists():
            account = UserAccount(user_id=user_id)
            self.save(account)
            log.info("account created uid=%s", user_id)
            return account

        raw = _read_json(path)
        version = _schema_version(raw)
        if version > SCHEMA_VERSION:
            raise StorageError(
                f"record {user_id!r} has schema_version {version}, newer than {SCHEMA_VERSION}"
            )

        upgraded = version < SCHEMA_VERSION
        while version < SCHEMA_VERSION:
            raw = MIGRATIONS[version](user_id, raw)
            version += 1

        try:
            account = UserAccount.from_dict(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"corrupt record {path}: {exc}") from exc

        if account.user_id != user_id:
            raise StorageError(f"record {path} belongs to {account.user_id!r}")
        _check_amounts(path, account)

        if upgraded:
            log.info("account migrated uid=%s schema_version=%s", user_id, SCHEMA_VERSION)
            self.save(account)
        return account

    def save(self, account: UserAccount) -> None:
        payload = account.to_dict()
        payload["schema_version"] = SCHEMA_VERSION
        _write_atomic(self._account_path(account.user_id), payload)

    def list_ids(self) -> List[str]:
        if not self.accounts_dir.exists():
            return []
        try:
            return sorted(path.stem for path in self.accounts_dir.glob("*.json"))
        except OSError as exc:
            raise StorageError(f"failed to list {self.accounts_dir}: {exc}") from exc

    def append_grant_log(self, entry: GrantLogEntry) -> None:
        entries: list[Any] = []
        if self.grant_log_path.exists():
            entries = _read_json(self.grant_log_path)
            if not isinstance(entries, list):
                raise StorageError(f"corrupt grant log {self.grant_log_path}")
        entries.append(entry.to_dict())
        _write_atomic(self.grant_log_path, entries)

    def import_legacy_balances(self, balances: Mapping[str, Any]) -> int:
        """Seed balances from a flat ``{user_id: coins}`` mapping.

        Existing totals and history are kept; only ``balance`` is replaced.
        Negative or non-integer amounts are skipped.
        """

        imported = 0
        for user_id, coins in _iter_legacy(balances):
            account = self.load(user_id)
            account.balance = coins
            self.save(account)
            imported += 1
        return imported


def _iter_legacy(balances: Mapping[str, Any]) -> Iterable[tuple[str, int]]:
    for key, value in balances.items():
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            log.warning("legacy balance skipped uid=%s value=%r", key, value)
            continue
        yield str(key), value


__all__ = ["MIGRATIONS", "RecordStore", "SCHEMA_VERSION"]
