"""Bot utilities - error handling, logging, and parsing helpers."""

import functools
import logging
import shlex
from typing import Any, Callable

from aiogram import types
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import CallbackQuery, Message

logger = logging.getLogger("vault_casino.bot")


def safe_handler(func: Callable) -> Callable:
    """Decorator to wrap handlers with error handling.

    Catches all exceptions, logs them, and sends a user-friendly error message.
    Works with both Message and CallbackQuery handlers.
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        update: Message | CallbackQuery | None = None
        for arg in args:
            if isinstance(arg, (Message, CallbackQuery)):
                update = arg
                break

        try:
            return await func(*args, **kwargs)
        except TelegramBadRequest as e:
            # Old buttons - the query can no longer be answered
            if "query is too old" in str(e).lower():
                logger.debug(f"Ignoring old callback query in {func.__name__}")
                return None
            logger.exception(f"Telegram rejected a request in {func.__name__}: {e}")
            return None
        except Exception as e:
            user_id = None
            chat_id = None

            if isinstance(update, Message):
                user_id = update.from_user.id if update.from_user else None
                chat_id = update.chat.id
            elif isinstance(update, CallbackQuery):
                user_id = update.from_user.id
                chat_id = update.message.chat.id if update.message else None

            logger.exception(
                f"Handler error in {func.__name__}: {e}",
                extra={
                    "user_id": user_id,
                    "chat_id": chat_id,
                    "handler": func.__name__,
                },
            )

            error_msg = "Something went wrong. Please try again later."

            try:
                if isinstance(update, Message):
                    await update.reply(error_msg)
                elif isinstance(update, CallbackQuery):
                    await update.answer(error_msg, show_alert=True)
            except TelegramBadRequest as tg_err:
                if "query is too old" not in str(tg_err).lower():
                    logger.exception("Failed to send error message to user")
            except Exception:
                logger.exception("Failed to send error message to user")

            return None

    return wrapper


def log_command(command: str) -> Callable:
    """Decorator to log command usage.

    Args:
        command: The command name (e.g., "/duel", "/daily")
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for arg in args:
                if isinstance(arg, Message):
                    user_id = arg.from_user.id if arg.from_user else None
                    username = arg.from_user.username if arg.from_user else None
                    logger.info(f"Command {command} from user {user_id} (@{username}) in chat {arg.chat.id}")
                    break

            return await func(*args, **kwargs)

        return wrapper

    return decorator


def log_callback(action: str) -> Callable:
    """Decorator to log callback query actions.

    Args:
        action: Description of the action (e.g., "duel_action")
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for arg in args:
                if isinstance(arg, CallbackQuery):
                    chat_id = arg.message.chat.id if arg.message else None
                    logger.info(
                        f"Callback {action} from user {arg.from_user.id} (@{arg.from_user.username}) in chat {chat_id}"
                    )
                    break

            return await func(*args, **kwargs)

        return wrapper

    return decorator


def get_display_name(user: types.User | None) -> str:
    """Get display name for a Telegram user.

    Args:
        user: The Telegram user

    Returns:
        Display name (full name or username or "Unknown")
    """
    if user is None:
        return "Unknown"

    if user.full_name:
        return user.full_name
    if user.username:
        return f"@{user.username}"
    return f"User {user.id}"


def parse_command_args(raw: str | None) -> list[str]:
    """Split command arguments, honouring quotes for names with spaces.

    Unbalanced quotes fall back to plain whitespace splitting.

    Args:
        raw: Text after the command (CommandObject.args)

    Returns:
        List of arguments, empty if there were none
    """
    if not raw:
        return []
    try:
        return shlex.split(raw)
    except ValueError:
        return raw.split()


def format_money(amount: int) -> str:
    """Format a currency amount with thousands separators."""
    return f"${amount:,}"
