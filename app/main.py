"""Application entry point."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from aiogram import Bot, Dispatcher, Router, __version__ as aiogram_version
from aiogram.client.default import DefaultBotProperties

from app.config import settings
from app.handlers import economy as h_economy
from app.logging_config import resolve_log_level, setup_logging
from app.middlewares import AuditMiddleware
from economy import LedgerService, RankingView, RecordStore

ALLOWED_UPDATES = ["message"]

startup_log = logging.getLogger("startup")


def _register_audit_middleware(dp: Dispatcher) -> AuditMiddleware:
    audit_middleware = AuditMiddleware()
    dp.message.middleware(audit_middleware)
    startup_log.info("S3: audit middleware registered")
    return audit_middleware


def _create_startup_router() -> Router:
    startup_router = Router(name="startup")

    @startup_router.startup()
    async def on_startup(bot: Bot) -> None:  # pragma: no cover - needs Telegram
        startup_log.info("S0: startup event fired")
        try:
            await bot.set_my_commands(h_economy.BOT_COMMANDS)
            startup_log.info("commands published count=%s", len(h_economy.BOT_COMMANDS))
        except Exception as exc:
            startup_log.warning("failed to publish commands: %s", exc)
        await _notify_admin_startup(bot)

    return startup_router


async def _notify_admin_startup(bot: Bot) -> None:
    admins = settings.admin_ids
    if not admins:
        startup_log.info("admin notification skipped: no admin ids configured")
        return

    message = f"✅ Coin bot started: aiogram={aiogram_version} data_dir={settings.DATA_DIR}"
    for admin_id in sorted(admins):
        try:
            await bot.send_message(admin_id, message)
            startup_log.info("admin notified uid=%s", admin_id)
        except Exception as exc:  # pragma: no cover - network/Telegram errors
            startup_log.warning("failed to notify admin uid=%s: %s", admin_id, exc)


def build_dispatcher(store: RecordStore) -> Dispatcher:
    """Dispatcher with the ledger injected as ``ledger`` and ``ranking`` handler arguments."""

    dp = Dispatcher(ledger=LedgerService(store), ranking=RankingView(store))
    _register_audit_middleware(dp)
    routers = [_create_startup_router(), h_economy.router]
    for router in routers:
        dp.include_router(router)
    startup_log.info(
        "S4: routers attached names=%s updates=%s",
        [router.name for router in routers],
        sorted(dp.resolve_used_update_types()),
    )
    return dp


async def main() -> None:
    setup_logging(log_dir=settings.LOG_DIR, level=resolve_log_level(settings.LOG_LEVEL))

    t0 = time.perf_counter()

    def mark(tag: str) -> None:
        startup_log.info("%s (%.1f ms)", tag, (time.perf_counter() - t0) * 1000)

    mark("S1: setup_logging done")
    store = RecordStore(Path(settings.DATA_DIR))
    startup_log.info("ledger data_dir=%s accounts=%s", store.data_dir.resolve(), len(store.list_ids()))

    dp = build_dispatcher(store)
    mark("S2: dispatcher created")

    bot_token = settings.BOT_TOKEN or ""
    dry_run_reason: str | None = None
    if settings.DEV_DRY_RUN:
        dry_run_reason = "DEV_DRY_RUN"
    elif not bot_token:
        dry_run_reason = "missing BOT_TOKEN"
    elif bot_token.lower().startswith(("dummy", "placeholder")):
        dry_run_reason = "placeholder BOT_TOKEN"

    if dry_run_reason is not None:
        startup_log.warning("telegram init skipped (%s)", dry_run_reason)
        return

    bot = Bot(token=bot_token, default=DefaultBotProperties(parse_mode="HTML"))
    mark("S5: start_polling enter")
    try:
        await dp.start_polling(bot, allowed_updates=ALLOWED_UPDATES)
        mark("S6: start_polling exited normally")
    except Exception:
        startup_log.exception("E!: start_polling crashed")
        raise
    finally:
        await bot.session.close()
        logging.info(">>> Polling stopped")
