"""Duel history models."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class DuelRecord(Base):
    """A concluded duel with a winner.

    Append-only: written exactly once per settled match that produced a
    winner. Draws and abandoned matches leave no record.
    """

    __tablename__ = "duel_records"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    challenger_name: Mapped[str] = mapped_column(String(128), nullable=False)
    opponent_name: Mapped[str] = mapped_column(String(128), nullable=False)
    winner_name: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    wager: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<DuelRecord(id={self.id}, winner={self.winner_name}, wager={self.wager})>"
