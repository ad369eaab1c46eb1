"""Entry point for running the Vault Casino bot."""

import asyncio
import logging
import sys

from vault_casino.bot.app import create_bot, create_dispatcher
from vault_casino.config import get_settings
from vault_casino.db.engine import create_engine, create_session_factory
from vault_casino.engine import AsyncioScheduler, MatchOrchestrator
from vault_casino.services import CasinoService, ChatActorDirectory, LedgerService


async def main() -> None:
    """Start the bot."""
    settings = get_settings()

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    engine = create_engine(settings.database_url)
    session_factory = create_session_factory(engine)

    ledger = LedgerService(
        session_factory,
        starting_cash=settings.starting_cash,
        daily_amount=settings.daily_amount,
    )
    orchestrator = MatchOrchestrator(
        ledger,
        directory=ChatActorDirectory(session_factory),
        scheduler=AsyncioScheduler(),
        timeout_seconds=settings.duel_timeout_seconds,
        policy_delay_seconds=settings.duel_policy_delay_seconds,
        win_xp=settings.duel_win_xp,
        loss_xp=settings.duel_loss_xp,
        draw_xp=settings.duel_draw_xp,
    )

    bot = create_bot()
    dp = create_dispatcher(orchestrator, ledger, session_factory, settings, casino=CasinoService(ledger))

    logging.info("Starting Vault Casino bot...")

    try:
        await dp.start_polling(bot)
    finally:
        await orchestrator.shutdown()
        await bot.session.close()
        await engine.dispose()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    run()
