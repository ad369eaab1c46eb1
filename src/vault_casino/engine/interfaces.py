"""Interfaces of the collaborators the duel engine talks to."""

from dataclasses import dataclass
from typing import Protocol

from ..utils.progression import Progress

# Largest amount a wallet balance can hold (signed 64-bit column)
MAX_AMOUNT = 2**63 - 1


class InsufficientFundsError(ValueError):
    """Raised by a ledger when a debit exceeds the available balance."""

    def __init__(self, user_id: int, requested: int, available: int) -> None:
        super().__init__(f"User {user_id} cannot afford {requested} (balance {available})")
        self.user_id = user_id
        self.requested = requested
        self.available = available


class Ledger(Protocol):
    """Durable economy store.

    Each mutation must be atomic per wallet - concurrent matches may touch the
    same user, and the engine holds no cross-match lock.
    """

    async def get_balance(self, user_id: int) -> int: ...

    async def credit(self, user_id: int, amount: int) -> int:
        """Add funds. Returns the new balance."""
        ...

    async def debit(self, user_id: int, amount: int) -> int:
        """Remove funds. Returns the new balance, raises InsufficientFundsError."""
        ...

    async def grant_xp(self, user_id: int, amount: int) -> Progress: ...

    async def append_duel_record(
        self,
        challenger_name: str,
        opponent_name: str,
        winner_name: str,
        wager: int,
    ) -> None: ...


@dataclass(frozen=True)
class ResolvedActor:
    """A live user an opponent name was matched to."""

    actor_id: int
    display_name: str


class ActorDirectory(Protocol):
    """Looks up live users by a name typed into a command."""

    async def resolve(self, name: str, chat_id: int | None = None) -> ResolvedActor | None: ...
