"""Chat commands exposing the coin ledger."""
from __future__ import annotations

import html
import logging
from dataclasses import dataclass

from aiogram import Bot, F, Router
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command, CommandObject
from aiogram.types import BotCommand, Message

from app.config import settings
from app.handlers.guards import admin_only
from economy import (
    CooldownActive,
    InsufficientFunds,
    InvalidTarget,
    LedgerError,
    LedgerService,
    RankingView,
    StorageError,
    millis,
)

router = Router(name="economy")
# anonymous admins and channel posts carry no sender to charge
router.message.filter(F.from_user)

log = logging.getLogger("economy")

COIN = "🪙"
UNKNOWN_USER = "[Unknown User]"
GENERIC_FAILURE_TEXT = "⚠️ Something went wrong, please try again later."
NOT_ENOUGH_TEXT = "🚫 You don't have enough money."

BOT_COMMANDS = [
    BotCommand(command="balance", description="Check your balance"),
    BotCommand(command="wallet", description="Balance, totals and recent grants"),
    BotCommand(command="pay", description="Send money to another user"),
    BotCommand(command="daily", description="Claim the daily reward"),
    BotCommand(command="leaderboard", description="Show the top users with the most money"),
    BotCommand(command="earn", description="Give money to a user (admins)"),
    BotCommand(command="reset_balance", description="Reset a user's balance (admins)"),
]


class UsageError(ValueError):
    """Command arguments could not be parsed."""


@dataclass(slots=True)
class Target:
    user_id: str
    name: str
    is_bot: bool = False


def _display_name(user) -> str:  # noqa: ANN001 - aiogram User
    full_name = getattr(user, "full_name", None)
    username = getattr(user, "username", None)
    return full_name or username or str(user.id)


def _parse_amount(raw: str) -> int:
    try:
        amount = int(raw)
    except ValueError as exc:
        raise UsageError(f"⚠️ Amount must be a whole number, got {html.escape(raw)}.") from exc
    if amount < 1 or amount > settings.MAX_AMOUNT:
        raise UsageError(f"⚠️ Amount must be between 1 and {settings.MAX_AMOUNT}.")
    return amount


def _resolve_target(message: Message, args: list[str]) -> tuple[Target, list[str]]:
    """Target is the replied-to user, or a numeric id as the first argument."""

    reply = message.reply_to_message
    if reply is not None and reply.from_user is not None:
        user = reply.from_user
        return Target(str(user.id), _display_name(user), bool(user.is_bot)), args
    if not args or not (args[0].isascii() and args[0].isdigit()):
        raise UsageError("⚠️ Reply to a user's message or pass their numeric id.")
    return Target(args[0], args[0]), args[1:]


def _parse_target_amount(message: Message, command: CommandObject, name: str) -> tuple[Target, int]:
    args = (command.args or "").split()
    target, rest = _resolve_target(message, args)
    if len(rest) != 1:
        raise UsageError(f"Usage: reply with /{name} &lt;amount&gt; or /{name} &lt;user_id&gt; &lt;amount&gt;")
    return target, _parse_amount(rest[0])


def format_duration(remaining_millis: int) -> str:
    seconds = max(0, (remaining_millis + 999) // 1000)
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


async def _reply_error(message: Message, exc: LedgerError) -> None:
    if isinstance(exc, InsufficientFunds):
        text = NOT_ENOUGH_TEXT
    elif isinstance(exc, InvalidTarget):
        text = f"⚠️ Not allowed: {exc.reason}."
    elif isinstance(exc, CooldownActive):
        text = f"⏳ Already claimed. Come back in {format_duration(exc.remaining_millis)}."
    else:
        log.error(
            "ledger failure uid=%s text=%r: %s",
            getattr(message.from_user, "id", None),
            message.text,
            exc,
            exc_info=exc,
        )
        text = GENERIC_FAILURE_TEXT
    await message.answer(text)


@router.message(Command("earn"))
@admin_only
async def earn(message: Message, command: CommandObject, ledger: LedgerService) -> None:
    try:
        target, amount = _parse_target_amount(message, command, "earn")
    except UsageError as exc:
        await message.answer(str(exc))
        return

    try:
        account, _ = ledger.grant(
            str(message.from_user.id),
            target.user_id,
            amount,
            granter_name=_display_name(message.from_user),
            target_name=target.name,
            target_is_bot=target.is_bot,
        )
    except LedgerError as exc:
        await _reply_error(message, exc)
        return

    await message.answer(
        f"{html.escape(target.name)} has been given {COIN}{amount}. Total: {COIN}{account.balance}"
    )


@router.message(Command("balance"))
async def balance(message: Message, ledger: LedgerService) -> None:
    try:
        view = ledger.get_balance(str(message.from_user.id))
    except StorageError as exc:
        await _reply_error(message, exc)
        return
    await message.answer(f"💰 You have {COIN}{view.balance}")


@router.message(Command("wallet"))
async def wallet(message: Message, ledger: LedgerService) -> None:
    user_id = str(message.from_user.id)
    try:
        view = ledger.get_balance(user_id)
        history = ledger.history(user_id, limit=settings.HISTORY_LIMIT)
    except StorageError as exc:
        await _reply_error(message, exc)
        return

    lines = [
        "💰 <b>Your wallet</b>",
        f"Balance: <b>{view.balance}</b>",
        f"Received in grants: {view.received_total}",
        f"Given in grants: {view.given_total}",
    ]
    if history:
        lines.append("\n<b>Recent grants</b>")
        for direction, record in history:
            who = html.escape(record.counterparty_name or record.counterparty_id)
            arrow = "⬅️ from" if direction == "in" else "➡️ to"
            lines.append(f"{arrow} {who}: <b>{record.amount}</b> ({record.ts[:16].replace('T', ' ')})")
    else:
        lines.append("\nNo grants yet.")
    await message.answer("\n".join(lines))


@router.message(Command("pay"))
async def pay(message: Message, command: CommandObject, ledger: LedgerService) -> None:
    try:
        target, amount = _parse_target_amount(message, command, "pay")
    except UsageError as exc:
        await message.answer(str(exc))
        return

    try:
        payer, _ = ledger.transfer(
            str(message.from_user.id),
            target.user_id,
            amount,
            payee_is_bot=target.is_bot,
        )
    except LedgerError as exc:
        await _reply_error(message, exc)
        return

    await message.answer(
        f"💸 You paid {COIN}{amount} to {html.escape(target.name)}. You now have {COIN}{payer.balance}."
    )


@router.message(Command("daily"))
async def daily(message: Message, ledger: LedgerService) -> None:
    try:
        account = ledger.claim_daily_grant(
            str(message.from_user.id),
            millis(),
            settings.DAILY_GRANT_AMOUNT,
            settings.daily_cooldown_millis,
        )
    except LedgerError as exc:
        await _reply_error(message, exc)
        return
    await message.answer(
        f"🎁 You claimed {COIN}{settings.DAILY_GRANT_AMOUNT}. You now have {COIN}{account.balance}."
    )


@router.message(Command("reset_balance"))
@admin_only
async def reset_balance(message: Message, command: CommandObject, ledger: LedgerService) -> None:
    try:
        target, rest = _resolve_target(message, (command.args or "").split())
    except UsageError as exc:
        await message.answer(str(exc))
        return
    if rest:
        await message.answer("Usage: reply with /reset_balance or /reset_balance &lt;user_id&gt;")
        return

    try:
        ledger.reset_balance(target.user_id)
    except LedgerError as exc:
        await _reply_error(message, exc)
        return
    await message.answer(f"🧹 Balance of {html.escape(target.name)} reset to {COIN}0.")


async def _lookup_name(bot: Bot | None, user_id: str) -> str:
    if bot is None:
        return UNKNOWN_USER
    try:
        chat = await bot.get_chat(int(user_id))
    except (TelegramAPIError, ValueError):
        return UNKNOWN_USER
    return getattr(chat, "full_name", None) or getattr(chat, "username", None) or UNKNOWN_USER


@router.message(Command("leaderboard"))
async def leaderboard(message: Message, ranking: RankingView, bot: Bot | None = None) -> None:
    try:
        rows = ranking.top(settings.LEADERBOARD_SIZE)
    except StorageError as exc:
        await _reply_error(message, exc)
        return

    if not rows:
        await message.answer("🏆 Nobody has any coins yet.")
        return

    lines = ["🏆 <b>Leaderboard</b> 🏆"]
    for place, (user_id, coins) in enumerate(rows, 1):
        name = await _lookup_name(bot, user_id)
        lines.append(f"{place}. {html.escape(name)} — {COIN}{coins}")
    await message.answer("\n".join(lines))


__all__ = ["BOT_COMMANDS", "format_duration", "router"]
