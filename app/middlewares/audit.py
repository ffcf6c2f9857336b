"""Audit middleware for logging every command."""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware, types
from aiogram.types import Message

log = logging.getLogger("audit")


class AuditMiddleware(BaseMiddleware):
    """Log every incoming message with its latency and surface handler errors."""

    async def __call__(
        self,
        handler: Callable[[types.TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: types.TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        started = time.perf_counter()
        uid = None
        text = None
        if isinstance(event, Message):
            uid = getattr(event.from_user, "id", None)
            text = event.text or event.caption
            log.info(
                "MSG uid=%s uname=%s chat=%s text=%r",
                uid,
                getattr(event.from_user, "username", None),
                getattr(event.chat, "id", None),
                text,
            )
        try:
            return await handler(event, data)
        except Exception:
            log.exception("Handler error uid=%s text=%r", uid, text)
            raise
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            log.debug("AUDIT uid=%s latency_ms=%.2f", uid, elapsed_ms)
