"""Process entry point: one bot per ledger directory."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

from app.config import settings
from app.instance_lock import AlreadyRunningError, InstanceLock
from app.main import main

EXIT_ALREADY_RUNNING = 12

log = logging.getLogger("startup")


def lock_path(data_dir: str | Path | None = None) -> Path:
    """The pid lock lives next to the account files it guards."""

    return Path(data_dir or settings.DATA_DIR) / "bot.lock"


def run(data_dir: str | Path | None = None) -> int:
    try:
        with InstanceLock(lock_path(data_dir)):
            asyncio.run(main())
    except AlreadyRunningError as exc:
        print(f"{exc}; remove {exc.path} if that process is gone", file=sys.stderr)
        return EXIT_ALREADY_RUNNING
    except KeyboardInterrupt:
        log.info("interrupted, ledger lock released")
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
