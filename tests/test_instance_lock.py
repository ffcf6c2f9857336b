from __future__ import annotations

import os

import pytest

from app.instance_lock import AlreadyRunningError, InstanceLock


def test_lock_writes_and_removes_pid(tmp_path) -> None:
    path = tmp_path / "data" / "bot.lock"
    with InstanceLock(path) as lock:
        assert lock.acquired
        assert path.read_text() == str(os.getpid())
    assert not path.exists()


def test_lock_held_by_live_process(tmp_path) -> None:
    path = tmp_path / "bot.lock"
    path.write_text(str(os.getpid()))

    with pytest.raises(AlreadyRunningError) as excinfo:
        InstanceLock(path).acquire()
    assert excinfo.value.pid == os.getpid()
    assert path.exists()


def test_stale_lock_is_replaced(tmp_path) -> None:
    path = tmp_path / "bot.lock"
    path.write_text("not-a-pid")

    lock = InstanceLock(path)
    lock.acquire()
    try:
        assert path.read_text() == str(os.getpid())
    finally:
        lock.release()
