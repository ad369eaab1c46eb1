"""Bot application setup and dispatcher."""

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vault_casino.config import Settings, get_settings
from vault_casino.engine import MatchOrchestrator
from vault_casino.services.games import CasinoService
from vault_casino.services.ledger import LedgerService


def create_bot() -> Bot:
    """Create and configure the Telegram bot instance."""
    settings = get_settings()
    return Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )


def create_dispatcher(
    orchestrator: MatchOrchestrator,
    ledger: LedgerService,
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings | None = None,
    casino: CasinoService | None = None,
) -> Dispatcher:
    """Create and configure the dispatcher with routers.

    The orchestrator, ledger, casino, session factory and settings are
    placed in workflow data, so handlers receive them as keyword arguments.
    """
    from vault_casino.bot.handlers import duels_router, economy_router, games_router

    dp = Dispatcher(
        orchestrator=orchestrator,
        ledger=ledger,
        casino=casino or CasinoService(ledger),
        session_factory=session_factory,
        settings=settings or get_settings(),
    )
    dp.include_router(economy_router)
    dp.include_router(duels_router)
    dp.include_router(games_router)
    return dp
