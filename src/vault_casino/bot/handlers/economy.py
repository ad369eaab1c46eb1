"""Economy handlers - /start, /help, /balance, /daily, /give, /leaderboard, /duels."""

import html
import logging

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...config import Settings
from ...engine import InsufficientFundsError
from ...services.ledger import LedgerService
from ...services.players import PlayerService
from ..utils import format_money, get_display_name, log_command, parse_command_args, safe_handler

logger = logging.getLogger(__name__)

router = Router(name="economy")

LEADERBOARD_SIZE = 10
RECENT_DUELS_SIZE = 10


def format_cooldown(ms_remaining: int) -> str:
    """Format a remaining cooldown as hours and minutes."""
    minutes = max(0, ms_remaining) // 60_000
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


async def touch_user(message: Message, session_factory: async_sessionmaker[AsyncSession], settings: Settings) -> None:
    """Register the sender so they can be found as a duel opponent."""
    user = message.from_user
    async with session_factory() as session:
        await PlayerService(session, settings.starting_cash).register(
            user_id=user.id,
            display_name=get_display_name(user),
            username=user.username,
            chat_id=message.chat.id,
        )
        await session.commit()


@router.message(Command("start"))
@safe_handler
@log_command("/start")
async def cmd_start(
    message: Message,
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> None:
    """Handle /start command."""
    if not message.from_user:
        await message.answer("Could not identify user. Please try again.")
        return

    await touch_user(message, session_factory, settings)

    await message.answer(
        "<b>Welcome to the Vault!</b>\n\n"
        f"Every new patron starts with {format_money(settings.starting_cash)}.\n\n"
        "<b>Quick Start:</b>\n"
        " /duel &lt;your character&gt; &lt;opponent&gt; [wager] to start a duel\n"
        " /daily to collect your allowance\n"
        " /balance to check your wallet\n\n"
        "Use /help for all commands!"
    )


@router.message(Command("help"))
@safe_handler
@log_command("/help")
async def cmd_help(message: Message, settings: Settings) -> None:
    """Handle /help command."""
    timeout = int(settings.duel_timeout_seconds)
    help_text = (
        "<b>Vault Casino Help</b>\n\n"
        "<b>Wallet</b>\n"
        "/balance - Show your balance and level\n"
        f"/daily - Claim {format_money(settings.daily_amount)} once every 24 hours\n"
        "/give &lt;amount&gt; - Reply to someone to send them money\n"
        "/give &lt;user id&gt; &lt;amount&gt; - Send money by user ID\n\n"
        "<b>Duels</b>\n"
        "/duel &lt;character1&gt; &lt;character2&gt; [wager]\n"
        "<i>Quote names with spaces: /duel \"Iron Maw\" Vex 200</i>\n"
        "If character2 matches someone in this chat, they play the second side. "
        "Otherwise the Vault plays it.\n"
        "Strike deals damage, Guard halves the next hit, Channel Fate restores vitality.\n"
        f"A duel lasts {timeout} seconds; when time runs out the higher HP wins.\n"
        "The winner takes double the pot.\n\n"
        "<b>Games</b>\n"
        "/bet coinflip &lt;amount&gt; &lt;heads|tails&gt; - Double or nothing\n"
        "/bet slots &lt;amount&gt; or /slots &lt;amount&gt; - Pairs pay 1.5x, triples 5x, sevens 15x\n"
        "/bet blackjack &lt;amount&gt; - Beat the dealer for double, ties return the stake\n\n"
        "<b>Competition</b>\n"
        "/leaderboard - Richest patrons\n"
        "/duels - Recent duel results\n"
    )
    await message.answer(help_text)


@router.message(Command("balance"))
@safe_handler
@log_command("/balance")
async def cmd_balance(
    message: Message,
    ledger: LedgerService,
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> None:
    """Handle /balance command - show wallet and progression."""
    if not message.from_user:
        await message.answer("Could not identify user. Please try again.")
        return

    await touch_user(message, session_factory, settings)

    balance = await ledger.get_balance(message.from_user.id)
    progress = await ledger.get_progress(message.from_user.id)

    lines = [
        f"<b>{html.escape(get_display_name(message.from_user))}</b>",
        "",
        f"💰 Balance: <b>{format_money(balance)}</b>",
        f"⭐ Level {progress.level} ({progress.xp} XP, {progress.xp_to_next_level} to next)",
    ]
    await message.answer("\n".join(lines))


@router.message(Command("daily"))
@safe_handler
@log_command("/daily")
async def cmd_daily(message: Message, ledger: LedgerService) -> None:
    """Handle /daily command - claim the daily allowance."""
    if not message.from_user:
        await message.answer("Could not identify user. Please try again.")
        return

    result = await ledger.grant_daily(message.from_user.id)

    if not result.ok:
        await message.reply(f"⏳ Come back in {format_cooldown(result.ms_remaining)}.")
        return

    await message.reply(
        f"🎁 You collected {format_money(result.amount)}. Balance: <b>{format_money(result.balance)}</b>"
    )


@router.message(Command("give"))
@safe_handler
@log_command("/give")
async def cmd_give(message: Message, command: CommandObject, ledger: LedgerService) -> None:
    """Handle /give command - send money to another user."""
    sender = message.from_user
    if not sender:
        await message.answer("Could not identify user. Please try again.")
        return

    args = parse_command_args(command.args)
    target_id: int | None = None
    target_name = ""
    raw_amount: str | None = None

    reply_user = message.reply_to_message.from_user if message.reply_to_message else None
    if reply_user and len(args) == 1:
        target_id = reply_user.id
        target_name = get_display_name(reply_user)
        raw_amount = args[0]
    elif len(args) == 2 and args[0].isdigit():
        target_id = int(args[0])
        target_name = f"user {target_id}"
        raw_amount = args[1]

    if target_id is None or raw_amount is None:
        await message.reply("Usage: reply with /give &lt;amount&gt; or /give &lt;user id&gt; &lt;amount&gt;")
        return

    if reply_user and reply_user.is_bot:
        await message.reply("Bots don't need money.")
        return

    try:
        amount = int(raw_amount.replace(",", ""))
    except ValueError:
        await message.reply(f"❌ '{html.escape(raw_amount)}' is not a valid amount.")
        return

    try:
        result = await ledger.transfer(sender.id, target_id, amount)
    except InsufficientFundsError as e:
        await message.reply(f"⚠️ You only have {format_money(e.available)}.")
        return
    except ValueError as e:
        await message.reply(f"❌ {html.escape(str(e))}")
        return

    await message.reply(
        f"💸 Sent {format_money(amount)} to <b>{html.escape(target_name)}</b>.\n"
        f"Your balance: {format_money(result.from_balance)}"
    )


@router.message(Command("leaderboard"))
@safe_handler
@log_command("/leaderboard")
async def cmd_leaderboard(message: Message, ledger: LedgerService) -> None:
    """Handle /leaderboard command - show the richest wallets."""
    wallets = await ledger.leaderboard(LEADERBOARD_SIZE)

    if not wallets:
        await message.answer("The Vault is empty. Be the first to /start!")
        return

    medals = {1: " 🥇", 2: " 🥈", 3: " 🥉"}
    lines = ["<b>Leaderboard</b>", ""]
    for i, wallet in enumerate(wallets, 1):
        name = wallet.display_name or (f"@{wallet.username}" if wallet.username else f"User {wallet.user_id}")
        lines.append(
            f"{i}.{medals.get(i, '')} <b>{html.escape(name)}</b> - {format_money(wallet.balance)} (Lv {wallet.level})"
        )

    await message.answer("\n".join(lines))


@router.message(Command("duels"))
@safe_handler
@log_command("/duels")
async def cmd_duels(message: Message, ledger: LedgerService) -> None:
    """Handle /duels command - show recent duel results."""
    records = await ledger.recent_duels(RECENT_DUELS_SIZE)

    if not records:
        await message.answer("No duels have been settled yet.")
        return

    lines = ["<b>Recent Duels</b>", ""]
    for record in records:
        stake = f" for {format_money(record.wager)}" if record.wager > 0 else ""
        lines.append(
            f"⚔️ {html.escape(record.challenger_name)} vs {html.escape(record.opponent_name)}"
            f" - 🏆 <b>{html.escape(record.winner_name)}</b>{stake}"
        )

    await message.answer("\n".join(lines))
