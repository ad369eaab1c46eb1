"""Duel logging system for tracking and verifying engine output.

Provides a structured per-match log of:
- Match creation and the opponent binding
- Every resolved turn with before/after participant state
- Timeouts and stale policy moves
- Outcome and settlement
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .types import DuelAction, DuelOutcome, Match, ParticipantSnapshot, Side, TurnOutcome


class LogEventType(str, Enum):
    """Types of log events."""

    # Match lifecycle
    MATCH_CREATED = "match_created"
    TIMEOUT = "timeout"
    OUTCOME_DETERMINED = "outcome_determined"

    # Turns
    TURN_RESOLVED = "turn_resolved"
    POLICY_MOVE_SKIPPED = "policy_move_skipped"  # Match ended before the delayed move fired

    # Settlement
    SETTLED = "settled"
    SETTLEMENT_FAILED = "settlement_failed"


def _snapshot_to_dict(snapshot: ParticipantSnapshot) -> dict[str, Any]:
    return {
        "display_name": snapshot.display_name,
        "actor_id": snapshot.actor_id,
        "hit_points": snapshot.hit_points,
        "guarding": snapshot.guarding,
        "is_policy_controlled": snapshot.is_policy_controlled,
    }


@dataclass
class LogEntry:
    """A single log entry representing a duel event."""

    event_type: LogEventType
    turn_number: int
    timestamp_order: int = 0  # Order within the match for deterministic sorting

    # Turn data
    side: Side | None = None
    action: DuelAction | None = None
    value: int | None = None
    guard_absorbed: bool | None = None
    description: str | None = None

    # State after the event, both sides
    states: dict[Side, ParticipantSnapshot] | None = None

    # Outcome / settlement
    outcome: DuelOutcome | None = None
    payout: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: dict[str, Any] = {
            "event_type": self.event_type.value,
            "turn_number": self.turn_number,
            "timestamp_order": self.timestamp_order,
        }

        if self.side is not None:
            result["side"] = self.side.value
        if self.action is not None:
            result["action"] = self.action.value
        if self.value is not None:
            result["value"] = self.value
        if self.guard_absorbed is not None:
            result["guard_absorbed"] = self.guard_absorbed
        if self.description is not None:
            result["description"] = self.description
        if self.states is not None:
            result["states"] = {side.value: _snapshot_to_dict(s) for side, s in self.states.items()}
        if self.outcome is not None:
            result["outcome"] = self.outcome.value
        if self.payout is not None:
            result["payout"] = self.payout

        return result


@dataclass
class DuelLog:
    """Complete log of one match."""

    match_id: str
    entries: list[LogEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "match_id": self.match_id,
            "entries": [entry.to_dict() for entry in self.entries],
        }

    def get_entries_by_type(self, event_type: LogEventType) -> list[LogEntry]:
        """Get all entries of a specific type."""
        return [e for e in self.entries if e.event_type == event_type]

    def get_entries_for_turn(self, turn_number: int) -> list[LogEntry]:
        """Get all entries for a specific turn."""
        return [e for e in self.entries if e.turn_number == turn_number]

    def format_readable(self) -> str:
        """Format the log in a human-readable format."""
        lines = [f"=== Duel Log (Match {self.match_id}) ==="]
        lines.extend(self._format_entry(entry) for entry in self.entries)
        return "\n".join(lines)

    def _format_entry(self, entry: LogEntry) -> str:
        """Format a single log entry."""
        match entry.event_type:
            case LogEventType.MATCH_CREATED:
                return f"  Match created: {entry.description}"

            case LogEventType.TURN_RESOLVED:
                hp = ""
                if entry.states:
                    hp = " [" + ", ".join(f"{s.display_name}: {s.hit_points} HP" for s in entry.states.values()) + "]"
                return f"  Turn {entry.turn_number} ({entry.side.value if entry.side else '?'}): {entry.description}{hp}"

            case LogEventType.POLICY_MOVE_SKIPPED:
                return f"  Policy move skipped: {entry.description}"

            case LogEventType.TIMEOUT:
                return f"  Timeout after turn {entry.turn_number}"

            case LogEventType.OUTCOME_DETERMINED:
                return f"  *** OUTCOME: {entry.outcome.value if entry.outcome else '?'} ***"

            case LogEventType.SETTLED:
                return f"  Settled: payout {entry.payout or 0}"

            case LogEventType.SETTLEMENT_FAILED:
                return f"  Settlement FAILED: {entry.description}"

            case _:
                return f"  {entry.event_type.value}: {entry.description or ''}"


class DuelLogger:
    """Logger for tracking the events of one match.

    Usage:
        logger = DuelLogger(match_id="abc")
        logger.log_match_created(match)
        logger.log_turn(match, turn_outcome)
        logger.log_outcome(match)

        print(logger.get_log().format_readable())
    """

    def __init__(self, match_id: str) -> None:
        """Initialize the logger for a match."""
        self.match_id = match_id
        self._log = DuelLog(match_id=match_id)
        self._order_counter = 0

    def _next_order(self) -> int:
        """Get the next timestamp order value."""
        self._order_counter += 1
        return self._order_counter

    def get_log(self) -> DuelLog:
        """Get the complete duel log."""
        return self._log

    @staticmethod
    def snapshot_states(match: Match) -> dict[Side, ParticipantSnapshot]:
        """Snapshot both participants."""
        return {
            Side.CHALLENGER: match.challenger.snapshot(),
            Side.OPPONENT: match.opponent.snapshot(),
        }

    def log_match_created(self, match: Match) -> None:
        """Log a newly activated match with its initial state."""
        control = "policy" if match.opponent.is_policy_controlled else "player"
        self._log.entries.append(
            LogEntry(
                event_type=LogEventType.MATCH_CREATED,
                turn_number=match.turn_number,
                timestamp_order=self._next_order(),
                description=(
                    f"{match.challenger.display_name} vs {match.opponent.display_name} "
                    f"({control} opponent), wager {match.wager}"
                ),
                states=self.snapshot_states(match),
            )
        )

    def log_turn(self, match: Match, outcome: TurnOutcome) -> None:
        """Log a resolved turn with the state after it."""
        self._log.entries.append(
            LogEntry(
                event_type=LogEventType.TURN_RESOLVED,
                turn_number=outcome.turn_number,
                timestamp_order=self._next_order(),
                side=outcome.side,
                action=outcome.action,
                value=outcome.value,
                guard_absorbed=outcome.guard_absorbed,
                description=outcome.log_line,
                states=self.snapshot_states(match),
            )
        )

    def log_policy_move_skipped(self, match: Match, reason: str) -> None:
        """Log a delayed policy move that found the match no longer waiting for it."""
        self._log.entries.append(
            LogEntry(
                event_type=LogEventType.POLICY_MOVE_SKIPPED,
                turn_number=match.turn_number,
                timestamp_order=self._next_order(),
                description=reason,
            )
        )

    def log_timeout(self, match: Match) -> None:
        """Log the overall match deadline elapsing."""
        self._log.entries.append(
            LogEntry(
                event_type=LogEventType.TIMEOUT,
                turn_number=match.turn_number,
                timestamp_order=self._next_order(),
                states=self.snapshot_states(match),
            )
        )

    def log_outcome(self, match: Match) -> None:
        """Log the outcome determination."""
        self._log.entries.append(
            LogEntry(
                event_type=LogEventType.OUTCOME_DETERMINED,
                turn_number=match.turn_number,
                timestamp_order=self._next_order(),
                outcome=match.outcome,
                states=self.snapshot_states(match),
            )
        )

    def log_settled(self, match: Match, payout: int, refund: int) -> None:
        """Log a successful settlement."""
        self._log.entries.append(
            LogEntry(
                event_type=LogEventType.SETTLED,
                turn_number=match.turn_number,
                timestamp_order=self._next_order(),
                outcome=match.outcome,
                payout=payout,
                description=f"refund {refund}" if refund else None,
            )
        )

    def log_settlement_failed(self, match: Match, message: str) -> None:
        """Log a settlement that hit a ledger error."""
        self._log.entries.append(
            LogEntry(
                event_type=LogEventType.SETTLEMENT_FAILED,
                turn_number=match.turn_number,
                timestamp_order=self._next_order(),
                outcome=match.outcome,
                description=message,
            )
        )
