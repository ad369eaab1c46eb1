"""Player service - wallet profiles, chat membership and opponent lookup."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.models.wallets import ChatMember, Wallet
from ..engine.interfaces import ResolvedActor

logger = logging.getLogger(__name__)


class PlayerService:
    """Service for player profile operations."""

    def __init__(self, session: AsyncSession, starting_cash: int = 5000) -> None:
        self.session = session
        self.starting_cash = starting_cash

    async def register(
        self,
        user_id: int,
        display_name: str,
        username: str | None = None,
        chat_id: int | None = None,
    ) -> Wallet:
        """Get or create a user's wallet and remember where they were seen.

        Args:
            user_id: Telegram user ID
            display_name: Full name from Telegram
            username: Telegram @username, if set
            chat_id: Chat the user just interacted in

        Returns:
            Wallet instance
        """
        wallet = await self.session.get(Wallet, user_id)

        if wallet is None:
            wallet = Wallet(
                user_id=user_id,
                username=username,
                display_name=display_name,
                balance=self.starting_cash,
                last_daily=0,
                xp=0,
                level=1,
            )
            self.session.add(wallet)
        else:
            # Keep names current - they are what opponents get resolved by
            if wallet.display_name != display_name:
                wallet.display_name = display_name
            if wallet.username != username:
                wallet.username = username

        if chat_id is not None:
            stmt = select(ChatMember).where(ChatMember.chat_id == chat_id, ChatMember.user_id == user_id)
            result = await self.session.execute(stmt)
            if result.scalar_one_or_none() is None:
                self.session.add(ChatMember(chat_id=chat_id, user_id=user_id))

        await self.session.flush()
        return wallet

    async def get_wallet(self, user_id: int) -> Wallet | None:
        """Get wallet by user ID."""
        return await self.session.get(Wallet, user_id)


class ChatActorDirectory:
    """Resolves names typed into /duel to users seen in the chat.

    Match order: numeric user ID, then @username, then display name - all
    exact and case-insensitive.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def resolve(self, name: str, chat_id: int | None = None) -> ResolvedActor | None:
        needle = name.strip()
        if not needle:
            return None

        async with self.session_factory() as session:
            wallet = None
            if needle.lstrip("-").isdigit():
                wallet = await self._find(session, Wallet.user_id == int(needle), chat_id)
            if wallet is None:
                lowered = needle.lstrip("@").lower()
                wallet = await self._find(session, func.lower(Wallet.username) == lowered, chat_id)
            if wallet is None:
                wallet = await self._find(session, func.lower(Wallet.display_name) == needle.lower(), chat_id)

        if wallet is None:
            return None

        display_name = wallet.display_name or wallet.username or needle
        return ResolvedActor(actor_id=wallet.user_id, display_name=display_name)

    @staticmethod
    async def _find(session: AsyncSession, criterion, chat_id: int | None) -> Wallet | None:
        stmt = select(Wallet).where(criterion)
        if chat_id is not None:
            stmt = stmt.join(ChatMember, ChatMember.user_id == Wallet.user_id).where(ChatMember.chat_id == chat_id)
        stmt = stmt.order_by(Wallet.user_id).limit(1)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
