"""Ledger service - wallets, XP and duel history on top of the database."""

import logging
import time
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.models.duels import DuelRecord
from ..db.models.wallets import Wallet
from ..engine.interfaces import MAX_AMOUNT, InsufficientFundsError
from ..utils.progression import Progress, calculate_level

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


def check_amount(amount: int) -> None:
    """Reject amounts a wallet cannot move."""
    if amount <= 0:
        raise ValueError(f"Amount must be positive, got {amount}")
    if amount > MAX_AMOUNT:
        raise ValueError(f"Amount cannot exceed {MAX_AMOUNT}, got {amount}")


@dataclass
class DailyResult:
    """Result of a /daily claim."""

    ok: bool
    balance: int
    amount: int = 0
    ms_remaining: int = 0


@dataclass
class TransferResult:
    """Balances of both wallets after a transfer."""

    from_balance: int
    to_balance: int


class LedgerService:
    """Durable economy store.

    Every call runs in its own short transaction. Balance and XP changes are
    single UPDATE statements relative to the stored value, so concurrent
    matches touching the same wallet never overwrite each other.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        starting_cash: int = 5000,
        daily_amount: int = 1000,
    ) -> None:
        self.session_factory = session_factory
        self.starting_cash = starting_cash
        self.daily_amount = daily_amount

    async def get_balance(self, user_id: int) -> int:
        """Get a user's balance, opening their wallet if needed."""
        async with self.session_factory() as session:
            wallet = await self._ensure_wallet(session, user_id)
            balance = wallet.balance
            await session.commit()
        return balance

    async def credit(self, user_id: int, amount: int) -> int:
        """Add funds to a wallet.

        Args:
            user_id: Wallet owner
            amount: Positive amount to add

        Returns:
            New balance
        """
        check_amount(amount)

        async with self.session_factory() as session:
            await self._ensure_wallet(session, user_id)
            await session.execute(
                update(Wallet)
                .where(Wallet.user_id == user_id)
                .values(balance=Wallet.balance + amount)
                .execution_options(synchronize_session=False)
            )
            balance = await self._read_balance(session, user_id)
            await session.commit()
        return balance

    async def debit(self, user_id: int, amount: int) -> int:
        """Remove funds from a wallet.

        Args:
            user_id: Wallet owner
            amount: Positive amount to remove

        Returns:
            New balance

        Raises:
            InsufficientFundsError: Balance is below the amount; nothing is written
        """
        check_amount(amount)

        async with self.session_factory() as session:
            await self._ensure_wallet(session, user_id)
            if not await self._withdraw(session, user_id, amount):
                available = await self._read_balance(session, user_id)
                await session.rollback()
                raise InsufficientFundsError(user_id, amount, available)
            balance = await self._read_balance(session, user_id)
            await session.commit()
        return balance

    async def transfer(self, from_id: int, to_id: int, amount: int) -> TransferResult:
        """Move funds between two wallets in one transaction.

        Raises:
            ValueError: Non-positive amount or transfer to self
            InsufficientFundsError: Sender cannot afford it; nothing is written
        """
        check_amount(amount)
        if from_id == to_id:
            raise ValueError("Cannot transfer to yourself")

        async with self.session_factory() as session:
            await self._ensure_wallet(session, from_id)
            await self._ensure_wallet(session, to_id)
            if not await self._withdraw(session, from_id, amount):
                available = await self._read_balance(session, from_id)
                await session.rollback()
                raise InsufficientFundsError(from_id, amount, available)
            await session.execute(
                update(Wallet)
                .where(Wallet.user_id == to_id)
                .values(balance=Wallet.balance + amount)
                .execution_options(synchronize_session=False)
            )
            result = TransferResult(
                from_balance=await self._read_balance(session, from_id),
                to_balance=await self._read_balance(session, to_id),
            )
            await session.commit()

        logger.info(f"Transferred {amount} from user {from_id} to user {to_id}")
        return result

    async def grant_xp(self, user_id: int, amount: int) -> Progress:
        """Add XP and level up as needed.

        Returns:
            Progress after the grant
        """
        if amount < 0:
            raise ValueError(f"XP grant cannot be negative, got {amount}")

        async with self.session_factory() as session:
            await self._ensure_wallet(session, user_id)
            await session.execute(
                update(Wallet)
                .where(Wallet.user_id == user_id)
                .values(xp=Wallet.xp + amount)
                .execution_options(synchronize_session=False)
            )
            xp = (await session.execute(select(Wallet.xp).where(Wallet.user_id == user_id))).scalar_one()
            level = calculate_level(xp)
            # Levels only go up, even if a concurrent grant computed a lower one
            await session.execute(
                update(Wallet)
                .where(Wallet.user_id == user_id, Wallet.level < level)
                .values(level=level)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
        return Progress(xp=xp, level=level)

    async def get_progress(self, user_id: int) -> Progress:
        """Get a user's XP and level."""
        async with self.session_factory() as session:
            wallet = await self._ensure_wallet(session, user_id)
            progress = Progress(xp=wallet.xp, level=wallet.level)
            await session.commit()
        return progress

    async def grant_daily(self, user_id: int, now_ms: int | None = None) -> DailyResult:
        """Pay the daily allowance, at most once per 24 hours.

        Args:
            user_id: Claiming user
            now_ms: Current time in epoch milliseconds (defaults to the clock)

        Returns:
            DailyResult - ok=False carries the remaining cooldown
        """
        now_ms = int(time.time() * 1000) if now_ms is None else now_ms

        async with self.session_factory() as session:
            await self._ensure_wallet(session, user_id)
            result = await session.execute(
                update(Wallet)
                .where(Wallet.user_id == user_id, Wallet.last_daily <= now_ms - DAY_MS)
                .values(balance=Wallet.balance + self.daily_amount, last_daily=now_ms)
                .execution_options(synchronize_session=False)
            )
            claimed = result.rowcount > 0

            row = (
                await session.execute(
                    select(Wallet.balance, Wallet.last_daily).where(Wallet.user_id == user_id)
                )
            ).one()
            await session.commit()

        if claimed:
            return DailyResult(ok=True, balance=row.balance, amount=self.daily_amount)
        return DailyResult(ok=False, balance=row.balance, ms_remaining=DAY_MS - (now_ms - row.last_daily))

    async def leaderboard(self, limit: int = 10) -> list[Wallet]:
        """Richest wallets first."""
        async with self.session_factory() as session:
            stmt = select(Wallet).order_by(Wallet.balance.desc(), Wallet.user_id).limit(limit)
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def append_duel_record(
        self,
        challenger_name: str,
        opponent_name: str,
        winner_name: str,
        wager: int,
    ) -> DuelRecord:
        """Append a concluded duel to the history."""
        async with self.session_factory() as session:
            record = DuelRecord(
                challenger_name=challenger_name,
                opponent_name=opponent_name,
                winner_name=winner_name,
                wager=wager,
            )
            session.add(record)
            await session.commit()
        return record

    async def recent_duels(self, limit: int = 10) -> list[DuelRecord]:
        """Most recent duel records first."""
        async with self.session_factory() as session:
            stmt = select(DuelRecord).order_by(DuelRecord.id.desc()).limit(limit)
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def _ensure_wallet(self, session: AsyncSession, user_id: int) -> Wallet:
        """Load a wallet, creating it with the starting cash on first use."""
        wallet = await session.get(Wallet, user_id)
        if wallet is None:
            wallet = Wallet(user_id=user_id, balance=self.starting_cash, last_daily=0, xp=0, level=1)
            session.add(wallet)
            await session.flush()
            logger.info(f"Opened wallet for user {user_id} with {self.starting_cash}")
        return wallet

    @staticmethod
    async def _withdraw(session: AsyncSession, user_id: int, amount: int) -> bool:
        """Guarded decrement. Returns False if the balance was too low."""
        result = await session.execute(
            update(Wallet)
            .where(Wallet.user_id == user_id, Wallet.balance >= amount)
            .values(balance=Wallet.balance - amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    @staticmethod
    async def _read_balance(session: AsyncSession, user_id: int) -> int:
        result = await session.execute(select(Wallet.balance).where(Wallet.user_id == user_id))
        return result.scalar_one()
