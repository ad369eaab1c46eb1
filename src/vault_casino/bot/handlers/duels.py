"""Duel handlers - /duel and action selection."""

import html
import logging

from aiogram import Bot, F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup, Message
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...config import Settings
from ...engine import DuelAction, DuelError, MatchOrchestrator, MatchSnapshot
from ...engine.types import MAX_HP, ParticipantSnapshot
from ...services.players import PlayerService
from ..utils import format_money, get_display_name, log_callback, log_command, parse_command_args, safe_handler

logger = logging.getLogger(__name__)

router = Router(name="duels")


# Callback data: duel:{match_id}:{action}
ACTION_PREFIX = "duel:"

USAGE = "⚔️ Usage: /duel &lt;character1&gt; &lt;character2&gt; [wager]\nQuote names with spaces."

HP_BAR_WIDTH = 10


def get_action_keyboard(match_id: str) -> InlineKeyboardMarkup:
    """Create action selection keyboard."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text="⚔️ Strike",
                    callback_data=f"{ACTION_PREFIX}{match_id}:{DuelAction.STRIKE.value}",
                ),
                InlineKeyboardButton(
                    text="🛡️ Guard",
                    callback_data=f"{ACTION_PREFIX}{match_id}:{DuelAction.GUARD.value}",
                ),
                InlineKeyboardButton(
                    text="✨ Channel Fate",
                    callback_data=f"{ACTION_PREFIX}{match_id}:{DuelAction.RECOVER.value}",
                ),
            ]
        ]
    )


def parse_action_data(data: str) -> tuple[str, str] | None:
    """Split callback data into (match_id, action). None if malformed."""
    if not data.startswith(ACTION_PREFIX):
        return None
    match_id, sep, action = data[len(ACTION_PREFIX) :].rpartition(":")
    if not sep or not match_id or not action:
        return None
    return match_id, action


def parse_wager(raw: str | None) -> float | None:
    """Parse the optional wager argument. Missing means a friendly duel (0)."""
    if raw is None:
        return 0
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return None


def hp_bar(hit_points: int, width: int = HP_BAR_WIDTH) -> str:
    """Render hit points as a fixed-width bar."""
    filled = max(0, min(width, round(hit_points / MAX_HP * width)))
    return "█" * filled + "░" * (width - filled)


def format_participant(participant: ParticipantSnapshot) -> str:
    lines = [
        f"<b>{html.escape(participant.display_name)}</b>" + (" 🤖" if participant.is_policy_controlled else ""),
        f"   ❤️ {participant.hit_points}/{MAX_HP} {hp_bar(participant.hit_points)}",
    ]
    if participant.guarding:
        lines.append("   🛡️ Guarded")
    return "\n".join(lines)


def format_footer(snapshot: MatchSnapshot) -> str:
    """Pot and latest log line, or the friendly-duel marker."""
    parts = []
    if snapshot.wager > 0:
        parts.append(f"💰 Pot: {format_money(snapshot.pot)}")
    if snapshot.last_log:
        parts.append(html.escape(snapshot.last_log))
    if not parts:
        return "Friendly duel"
    return " • ".join(parts)


def format_match(snapshot: MatchSnapshot) -> str:
    """Format a match snapshot for display."""
    lines = ["<b>⚔️ Vault Duel</b>"]

    if snapshot.terminal:
        lines.append(f"<i>{html.escape(snapshot.description)}</i>" if snapshot.description else "<i>Duel over</i>")
    else:
        lines.append(f"Turn: <b>{html.escape(snapshot.current.display_name)}</b>")

    lines.append("")
    lines.append(format_participant(snapshot.challenger))
    lines.append(format_participant(snapshot.opponent))
    lines.append("")
    lines.append(format_footer(snapshot))

    return "\n".join(lines)


def make_message_listener(bot: Bot, chat_id: int, message_id: int):
    """Build a snapshot listener that keeps the duel message up to date."""

    async def listener(snapshot: MatchSnapshot) -> None:
        reply_markup = None if snapshot.terminal else get_action_keyboard(snapshot.match_id)
        try:
            await bot.edit_message_text(
                text=format_match(snapshot),
                chat_id=chat_id,
                message_id=message_id,
                reply_markup=reply_markup,
            )
        except TelegramBadRequest as e:
            if "message is not modified" in str(e).lower():
                return
            raise

    return listener


@router.message(Command("duel"))
@safe_handler
@log_command("/duel")
async def cmd_duel(
    message: Message,
    command: CommandObject,
    bot: Bot,
    orchestrator: MatchOrchestrator,
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> None:
    """Handle /duel command - start a duel between two characters."""
    user = message.from_user
    if not user:
        await message.answer("Could not identify user.")
        return

    args = parse_command_args(command.args)
    if len(args) not in (2, 3):
        await message.reply(USAGE)
        return

    wager = parse_wager(args[2] if len(args) == 3 else None)
    if wager is None:
        await message.reply(f"❌ '{html.escape(args[2])}' is not a valid wager.")
        return

    # Make the challenger known to the directory for future duels
    async with session_factory() as session:
        await PlayerService(session, settings.starting_cash).register(
            user_id=user.id,
            display_name=get_display_name(user),
            username=user.username,
            chat_id=message.chat.id,
        )
        await session.commit()

    result = await orchestrator.create_match(
        challenger_id=user.id,
        challenger_name=args[0],
        opponent_name=args[1],
        wager=wager,
        chat_id=message.chat.id,
    )

    if not result.success:
        await message.reply(f"⚠️ {html.escape(result.message)}")
        return

    sent = await message.answer(
        format_match(result.handle.snapshot),
        reply_markup=get_action_keyboard(result.match_id),
    )
    orchestrator.subscribe(result.match_id, make_message_listener(bot, sent.chat.id, sent.message_id))


@router.callback_query(F.data.startswith(ACTION_PREFIX))
@safe_handler
@log_callback("duel_action")
async def callback_duel_action(callback: CallbackQuery, orchestrator: MatchOrchestrator) -> None:
    """Handle action selection button."""
    if not callback.data or not callback.from_user:
        return

    parsed = parse_action_data(callback.data)
    if parsed is None:
        await callback.answer()
        return
    match_id, action = parsed

    result = await orchestrator.submit_action(match_id, callback.from_user.id, action)

    if not result.success:
        await callback.answer(result.message, show_alert=True)
        if result.error is DuelError.UNKNOWN_MATCH and callback.message:
            # Stale buttons of a finished duel
            try:
                await callback.message.edit_reply_markup(reply_markup=None)
            except TelegramBadRequest:
                logger.debug(f"Could not clear buttons for finished match {match_id}")
        return

    # The message itself is refreshed by the match listener
    await callback.answer(result.turn.log_line if result.turn else result.message)
