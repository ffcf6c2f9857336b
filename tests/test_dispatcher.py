"""Dispatcher wiring: routers, middleware and injected ledger."""

from __future__ import annotations

from app.main import build_dispatcher
from economy import LedgerService, RankingView, RecordStore


def test_build_dispatcher_injects_ledger(tmp_path) -> None:
    dp = build_dispatcher(RecordStore(tmp_path))

    assert isinstance(dp["ledger"], LedgerService)
    assert isinstance(dp["ranking"], RankingView)
    assert dp["ledger"].store is dp["ranking"].store
    assert "message" in dp.resolve_used_update_types()
    assert [router.name for router in dp.sub_routers] == ["startup", "economy"]
