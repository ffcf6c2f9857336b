"""Tests for the file-backed record store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from economy import GrantLogEntry, RecordStore, StorageError, TransferRecord, UserAccount
from economy.store import SCHEMA_VERSION


def test_load_missing_creates_and_persists_default(store: RecordStore) -> None:
    account = store.load("u1")

    assert account == UserAccount(user_id="u1")
    path = store.accounts_dir / "u1.json"
    assert path.exists()
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["balance"] == 0
    assert data["schema_version"] == SCHEMA_VERSION
    assert store.load("u1") == account


def test_save_overwrites_and_roundtrips_history(store: RecordStore) -> None:
    account = store.load("u1")
    account.balance = 70
    account.received_total = 100
    account.earn_received.append(
        TransferRecord(counterparty_id="admin", counterparty_name="Admin", amount=100, ts="2024-01-01T00:00:00+00:00")
    )
    account.last_grant_at = 1_700_000_000_000
    store.save(account)

    assert store.load("u1") == account


def test_save_leaves_no_temp_file(store: RecordStore) -> None:
    store.save(UserAccount(user_id="u1", balance=5))

    leftovers = [p.name for p in store.accounts_dir.iterdir() if p.suffix == ".tmp"]
    assert leftovers == []


def test_corrupt_record_raises_storage_error(store: RecordStore) -> None:
    store.accounts_dir.mkdir(parents=True)
    (store.accounts_dir / "u1.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError):
        store.load("u1")


def test_record_with_wrong_types_raises_storage_error(store: RecordStore) -> None:
    store.accounts_dir.mkdir(parents=True)
    payload = {
        "schema_version": SCHEMA_VERSION,
        "user_id": "u1",
        "balance": "lots",
        "given_total": 0,
        "received_total": 0,
        "earn_given": [],
        "earn_received": [],
        "last_grant_at": None,
    }
    (store.accounts_dir / "u1.json").write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(StorageError):
        store.load("u1")


def test_newer_schema_is_rejected(store: RecordStore) -> None:
    store.accounts_dir.mkdir(parents=True)
    (store.accounts_dir / "u1.json").write_text(
        json.dumps({"schema_version": SCHEMA_VERSION + 1, "user_id": "u1"}), encoding="utf-8"
    )

    with pytest.raises(StorageError):
        store.load("u1")


def test_legacy_partial_record_is_migrated(store: RecordStore) -> None:
    store.accounts_dir.mkdir(parents=True)
    path = store.accounts_dir / "u1.json"
    path.write_text(json.dumps({"balance": 42}), encoding="utf-8")

    account = store.load("u1")

    assert account.balance == 42
    assert account.given_total == 0
    assert account.earn_received == []
    assert account.last_grant_at is None
    assert json.loads(path.read_text(encoding="utf-8"))["schema_version"] == SCHEMA_VERSION


def test_legacy_bare_integer_record_is_migrated(store: RecordStore) -> None:
    store.accounts_dir.mkdir(parents=True)
    (store.accounts_dir / "u1.json").write_text("17", encoding="utf-8")

    assert store.load("u1").balance == 17


def test_legacy_negative_balance_is_rejected(store: RecordStore) -> None:
    store.accounts_dir.mkdir(parents=True)
    path = store.accounts_dir / "u1.json"
    path.write_text("-50", encoding="utf-8")

    with pytest.raises(StorageError):
        store.load("u1")
    assert path.read_text(encoding="utf-8") == "-50"
    assert "u1" in store.list_ids()


@pytest.mark.parametrize(
    "overrides",
    [
        {"balance": -9},
        {"given_total": -1},
        {"received_total": -3},
        {"earn_received": [{"counterparty_id": "admin", "amount": 0, "ts": "2024-01-01T00:00:00+00:00"}]},
        {"earn_given": [{"counterparty_id": "u2", "amount": -5, "ts": "2024-01-01T00:00:00+00:00"}]},
    ],
)
def test_negative_amounts_are_rejected(store: RecordStore, overrides: dict) -> None:
    store.accounts_dir.mkdir(parents=True)
    payload = {
        "schema_version": SCHEMA_VERSION,
        "user_id": "u1",
        "balance": 0,
        "given_total": 0,
        "received_total": 0,
        "earn_given": [],
        "earn_received": [],
        "last_grant_at": None,
    }
    payload.update(overrides)
    (store.accounts_dir / "u1.json").write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(StorageError):
        store.load("u1")


@pytest.mark.parametrize("bad_id", ["", "../etc", "a/b", "x" * 65, "abc\n"])
def test_invalid_ids_are_rejected(store: RecordStore, bad_id: str) -> None:
    with pytest.raises(StorageError):
        store.load(bad_id)
    assert store.list_ids() == []


def test_list_ids(store: RecordStore) -> None:
    assert store.list_ids() == []
    for user_id in ("b", "a", "c"):
        store.load(user_id)
    assert store.list_ids() == ["a", "b", "c"]


def test_append_grant_log_keeps_order(store: RecordStore) -> None:
    first = GrantLogEntry("admin", "Admin", "u1", "One", 100, "2024-01-01T00:00:00+00:00")
    second = GrantLogEntry("admin", "Admin", "u2", "Two", 5, "2024-01-01T00:00:01+00:00")

    store.append_grant_log(first)
    store.append_grant_log(second)

    entries = json.loads(store.grant_log_path.read_text(encoding="utf-8"))
    assert [entry["target_id"] for entry in entries] == ["u1", "u2"]
    assert entries[0]["amount"] == 100


def test_corrupt_grant_log_raises(store: RecordStore) -> None:
    store.data_dir.mkdir(parents=True)
    store.grant_log_path.write_text('{"not": "a list"}', encoding="utf-8")

    with pytest.raises(StorageError):
        store.append_grant_log(GrantLogEntry("a", "", "b", "", 1, "2024-01-01T00:00:00+00:00"))


def test_unwritable_directory_raises_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    store = RecordStore(blocker)

    with pytest.raises(StorageError):
        store.save(UserAccount(user_id="u1"))


def test_import_legacy_balances(store: RecordStore) -> None:
    imported = store.import_legacy_balances({"111": 10, "222": -5, "333": "x", "444": 0})

    assert imported == 2
    assert store.load("111").balance == 10
    assert store.load("444").balance == 0
    assert "222" not in store.list_ids()
