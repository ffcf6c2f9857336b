"""Test configuration helpers."""

from __future__ import annotations

import asyncio
import datetime as dt
import sys
from itertools import count
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from economy import LedgerService, RankingView, RecordStore  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register the asyncio marker for the lightweight runner below."""

    config.addinivalue_line("markers", "asyncio: execute the test inside an event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute ``@pytest.mark.asyncio`` tests without requiring pytest-asyncio."""

    marker = pyfuncitem.get_closest_marker("asyncio")
    if marker is None:
        return None

    func = pyfuncitem.obj
    if not asyncio.iscoroutinefunction(func):
        return None

    argnames = pyfuncitem._fixtureinfo.argnames
    kwargs = {name: pyfuncitem.funcargs[name] for name in argnames}
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        loop.run_until_complete(func(**kwargs))
    finally:
        asyncio.set_event_loop(None)
        loop.close()
    return True


def ticking_clock(start: dt.datetime | None = None) -> Callable[[], dt.datetime]:
    """Clock that advances one second per call."""

    base = start or dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
    ticks = count()
    return lambda: base + dt.timedelta(seconds=next(ticks))


@pytest.fixture
def store(tmp_path: Path) -> RecordStore:
    return RecordStore(tmp_path / "economy")


@pytest.fixture
def ledger(store: RecordStore) -> LedgerService:
    return LedgerService(store, clock=ticking_clock())


@pytest.fixture
def ranking(store: RecordStore) -> RankingView:
    return RankingView(store)


@pytest.fixture
def answers(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    """Capture ``Message.answer`` calls; texts are in ``answers.call_args_list``."""

    from aiogram.types import Message

    answer_mock = AsyncMock(return_value=None)

    async def fake_answer(self, *args: Any, **kwargs: Any):
        return await answer_mock(*args, **kwargs)

    monkeypatch.setattr(Message, "answer", fake_answer, raising=False)
    return answer_mock
