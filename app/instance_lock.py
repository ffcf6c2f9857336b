"""Pid-file lock so only one bot process writes a given ledger directory."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

log = logging.getLogger("startup")


class AlreadyRunningError(RuntimeError):
    """Raised when another bot process already owns the ledger directory."""

    def __init__(self, path: Path, pid: Optional[int] = None) -> None:
        self.path = path
        self.pid = pid
        message = f"Ledger at {path.parent} is locked by another bot"
        if pid is not None:
            message = f"{message} (PID {pid})"
        super().__init__(message)


def _is_process_running(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


@dataclass
class InstanceLock:
    path: Path
    acquired: bool = False

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            owner = self._read_pid()
            if owner is not None and _is_process_running(owner):
                raise AlreadyRunningError(self.path, owner) from None
            log.warning("stale lock removed path=%s pid=%s", self.path, owner)
            self.path.unlink(missing_ok=True)
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        with os.fdopen(fd, "w") as fh:
            fh.write(str(os.getpid()))
        self.acquired = True

    def release(self) -> None:
        if not self.acquired:
            return
        try:
            self.path.unlink(missing_ok=True)
        finally:
            self.acquired = False

    def __enter__(self) -> "InstanceLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def _read_pid(self) -> Optional[int]:
        try:
            content = self.path.read_text().strip()
        except OSError:
            return None
        try:
            return int(content) if content else None
        except ValueError:
            return None
