"""Duel engine module - match state, turn resolution, opponent policy and settlement."""

from .duel import DuelResult, MatchHandle, MatchOrchestrator
from .escrow import MAX_WAGER, InvalidWagerError, WagerEscrow
from .interfaces import MAX_AMOUNT, ActorDirectory, InsufficientFundsError, Ledger, ResolvedActor
from .logging import DuelLog, DuelLogger, LogEntry, LogEventType
from .policy import OpponentController
from .scheduling import AsyncioScheduler, Scheduler
from .settlement import Settlement, SettlementResult
from .state import DuelStateMachine
from .turn import TurnResolver
from .types import (
    DuelAction,
    DuelError,
    DuelOutcome,
    Match,
    MatchPhase,
    MatchSnapshot,
    Participant,
    Side,
    TurnOutcome,
)

__all__ = [
    "MatchOrchestrator",
    "MatchHandle",
    "DuelResult",
    "DuelStateMachine",
    "TurnResolver",
    "OpponentController",
    "Settlement",
    "SettlementResult",
    "WagerEscrow",
    "InvalidWagerError",
    "MAX_WAGER",
    "MAX_AMOUNT",
    "Ledger",
    "ActorDirectory",
    "ResolvedActor",
    "InsufficientFundsError",
    "Scheduler",
    "AsyncioScheduler",
    "DuelLogger",
    "DuelLog",
    "LogEntry",
    "LogEventType",
    "DuelAction",
    "DuelError",
    "DuelOutcome",
    "Match",
    "MatchPhase",
    "MatchSnapshot",
    "Participant",
    "Side",
    "TurnOutcome",
]
