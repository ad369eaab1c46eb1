"""Wallet and chat membership models."""

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class Wallet(Base, TimestampMixin):
    """Economy state of a Telegram user.

    Wallets are global - the same user carries one balance across every chat
    the bot is in. Created lazily with the configured starting cash.
    """

    __tablename__ = "wallets"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_wallet_balance_non_negative"),)

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    # Names used to resolve duel opponents typed as plain text
    username: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    display_name: Mapped[str | None] = mapped_column(String(128), nullable=True)

    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    last_daily: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)  # epoch ms

    # Progression
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    memberships: Mapped[list["ChatMember"]] = relationship(
        "ChatMember", back_populates="wallet", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Wallet(user={self.user_id}, balance={self.balance}, level={self.level})>"


class ChatMember(Base, TimestampMixin):
    """A user seen in a chat - makes them resolvable as a duel opponent there."""

    __tablename__ = "chat_members"
    __table_args__ = (UniqueConstraint("chat_id", "user_id", name="uq_chat_member"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    chat_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("wallets.user_id", ondelete="CASCADE"), nullable=False, index=True
    )

    wallet: Mapped["Wallet"] = relationship("Wallet", back_populates="memberships")

    def __repr__(self) -> str:
        return f"<ChatMember(chat={self.chat_id}, user={self.user_id})>"
