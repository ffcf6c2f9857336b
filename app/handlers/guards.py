"""Guards and decorators for handlers."""

from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

from aiogram.types import Message

from app.config import settings

Handler = TypeVar("Handler", bound=Callable[..., Awaitable[Any]])

log = logging.getLogger("audit")

ADMIN_REQUIRED_TEXT = "❌ You must be an admin to use this command."


def is_admin(user_id: int | None) -> bool:
    return user_id is not None and user_id in settings.admin_ids


def admin_only(handler: Handler) -> Handler:
    """Run the handler only for ``ADMIN_ID`` / ``ADMIN_USER_IDS`` callers."""

    @functools.wraps(handler)
    async def wrapper(message: Message, *args: Any, **kwargs: Any):  # type: ignore[override]
        user_id = getattr(message.from_user, "id", None)
        if not is_admin(user_id):
            log.warning("admin command denied uid=%s text=%r", user_id, message.text)
            await message.answer(ADMIN_REQUIRED_TEXT)
            return None
        return await handler(message, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


__all__ = ["ADMIN_REQUIRED_TEXT", "admin_only", "is_admin"]
