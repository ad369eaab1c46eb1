"""Service layer for economy persistence."""

from .games import BlackjackResult, CasinoService, CoinflipResult, SlotsResult
from .ledger import DailyResult, LedgerService, TransferResult
from .players import ChatActorDirectory, PlayerService

__all__ = [
    "LedgerService",
    "DailyResult",
    "TransferResult",
    "PlayerService",
    "ChatActorDirectory",
    "CasinoService",
    "CoinflipResult",
    "SlotsResult",
    "BlackjackResult",
]
