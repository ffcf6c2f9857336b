"""Seed the ledger from a flat ``{user_id: coins}`` money.json file."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.config import settings  # noqa: E402
from economy import RecordStore, StorageError  # noqa: E402

LOGGER = logging.getLogger("tools.import_money_json")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("source", nargs="?", default=settings.LEGACY_MONEY_FILE, help="legacy money.json path")
    parser.add_argument("--data-dir", default=settings.DATA_DIR, help="ledger data directory")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    source = Path(args.source)
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.error("cannot read %s: %s", source, exc)
        return 1
    if not isinstance(payload, dict):
        LOGGER.error("%s must contain a JSON object of user_id -> coins", source)
        return 1

    store = RecordStore(Path(args.data_dir))
    try:
        imported = store.import_legacy_balances(payload)
    except StorageError as exc:
        LOGGER.error("import failed: %s", exc)
        return 1

    LOGGER.info("imported %s of %s balances into %s", imported, len(payload), store.data_dir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
