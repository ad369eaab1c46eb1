"""Casino game handlers - /bet and /slots."""

import html
import logging

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from ...engine import InsufficientFundsError, InvalidWagerError
from ...services.games import BlackjackOutcome, BlackjackResult, CasinoService, CoinflipResult, SlotsResult
from ..utils import format_money, log_command, parse_command_args, safe_handler
from .duels import parse_wager

logger = logging.getLogger(__name__)

router = Router(name="games")

BET_USAGE = (
    "Usage:\n"
    "/bet coinflip &lt;amount&gt; &lt;heads|tails&gt;\n"
    "/bet slots &lt;amount&gt;\n"
    "/bet blackjack &lt;amount&gt;"
)
SLOTS_USAGE = "🎰 Usage: /slots &lt;amount&gt;"


def format_outcome_line(payout: int, balance: int) -> str:
    result = f"🎉 <b>WIN {format_money(payout)}!</b>" if payout > 0 else "💀 <b>LOSE</b>"
    return f"{result}\nBalance: {format_money(balance)}"


def format_coinflip(result: CoinflipResult) -> str:
    return (
        f"🪙 Bet <b>{format_money(result.wager)}</b> on <b>{result.pick}</b> → <b>{result.roll}</b>\n"
        + format_outcome_line(result.payout, result.balance)
    )


def format_slots(result: SlotsResult) -> str:
    lines = [
        f"🎰 Slots for <b>{format_money(result.wager)}</b>",
        " | ".join(result.reels),
        format_outcome_line(result.payout, result.balance),
    ]
    if result.progress is not None:
        lines.append(f"⭐ {result.progress.xp} XP (Level {result.progress.level})")
    return "\n".join(lines)


def format_blackjack(result: BlackjackResult) -> str:
    """Render both hands and the result."""
    if result.outcome is BlackjackOutcome.PUSH:
        verdict = f"🤝 <b>PUSH</b>, stake returned\nBalance: {format_money(result.balance)}"
    else:
        verdict = format_outcome_line(result.payout, result.balance)
    return (
        f"🃏 Blackjack for <b>{format_money(result.wager)}</b>\n"
        f"<b>You:</b> {' '.join(result.player_hand)} ({result.player_score})\n"
        f"<b>Dealer:</b> {' '.join(result.dealer_hand)} ({result.dealer_score})\n"
        f"{verdict}"
    )


async def play_round(
    message: Message, casino: CasinoService, game: str, raw_amount: str, pick: str | None = None
) -> None:
    """Run one round and answer with its result or the rejection."""
    wager = parse_wager(raw_amount)
    if wager is None:
        await message.reply(f"❌ '{html.escape(raw_amount)}' is not a valid amount.")
        return

    user_id = message.from_user.id
    try:
        if game == "coinflip":
            text = format_coinflip(await casino.coinflip(user_id, wager, pick or ""))
        elif game == "slots":
            text = format_slots(await casino.slots(user_id, wager))
        else:
            text = format_blackjack(await casino.blackjack(user_id, wager))
    except InsufficientFundsError as e:
        await message.reply(f"⚠️ You can't afford that wager. You have {format_money(e.available)}.")
        return
    except InvalidWagerError:
        await message.reply("💸 The wager must be a positive amount.")
        return
    except ValueError as e:
        await message.reply(f"❌ {html.escape(str(e))}")
        return

    await message.reply(text)


@router.message(Command("bet"))
@safe_handler
@log_command("/bet")
async def cmd_bet(message: Message, command: CommandObject, casino: CasinoService) -> None:
    """Handle /bet command - coinflip, slots or blackjack."""
    if not message.from_user:
        await message.answer("Could not identify user. Please try again.")
        return

    args = parse_command_args(command.args)
    game = args[0].lower() if args else ""

    if game == "coinflip" and len(args) == 3:
        await play_round(message, casino, game, args[1], pick=args[2])
    elif game in ("slots", "blackjack") and len(args) == 2:
        await play_round(message, casino, game, args[1])
    else:
        await message.reply(BET_USAGE)


@router.message(Command("slots"))
@safe_handler
@log_command("/slots")
async def cmd_slots(message: Message, command: CommandObject, casino: CasinoService) -> None:
    """Handle /slots command - shortcut for /bet slots."""
    if not message.from_user:
        await message.answer("Could not identify user. Please try again.")
        return

    args = parse_command_args(command.args)
    if len(args) != 1:
        await message.reply(SLOTS_USAGE)
        return

    await play_round(message, casino, "slots", args[0])
