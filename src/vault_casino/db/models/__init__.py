"""Database models."""

from .base import Base, TimestampMixin
from .duels import DuelRecord
from .wallets import ChatMember, Wallet

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Economy
    "Wallet",
    "ChatMember",
    # Duels
    "DuelRecord",
]
