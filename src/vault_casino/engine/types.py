"""Type definitions for the duel engine."""

import time
from dataclasses import dataclass, field
from enum import Enum

MAX_HP = 100


class Side(str, Enum):
    """The two slots of a match."""

    CHALLENGER = "challenger"
    OPPONENT = "opponent"

    @property
    def other(self) -> "Side":
        return Side.OPPONENT if self is Side.CHALLENGER else Side.CHALLENGER


class DuelAction(str, Enum):
    """Action a participant can take on their turn."""

    STRIKE = "strike"  # Damage the other side
    GUARD = "guard"  # Halve the next incoming strike
    RECOVER = "recover"  # Restore own HP ("Channel Fate")

    @classmethod
    def parse(cls, raw: "str | DuelAction") -> "DuelAction | None":
        """Parse a button/command value. Returns None for unknown values."""
        if isinstance(raw, DuelAction):
            return raw
        value = raw.strip().lower()
        if value == "focus":
            return cls.RECOVER
        try:
            return cls(value)
        except ValueError:
            return None


class MatchPhase(str, Enum):
    """Lifecycle of a match."""

    AWAITING_STAKE = "awaiting_stake"  # Created, wager not yet escrowed
    ACTIVE = "active"  # Turns being processed
    TERMINAL = "terminal"  # Outcome decided, never leaves this phase


class DuelOutcome(str, Enum):
    """How a match ended."""

    CHALLENGER_WINS = "challenger_wins"
    OPPONENT_WINS = "opponent_wins"
    DRAW = "draw"  # Equal HP at the end, including a double knockout
    ABANDONED = "abandoned"  # Timed out before any action was taken

    @property
    def winner(self) -> Side | None:
        if self is DuelOutcome.CHALLENGER_WINS:
            return Side.CHALLENGER
        if self is DuelOutcome.OPPONENT_WINS:
            return Side.OPPONENT
        return None


class DuelError(str, Enum):
    """Reasons a duel operation can be rejected or fail."""

    INSUFFICIENT_FUNDS = "insufficient_funds"
    INVALID_WAGER = "invalid_wager"
    NOT_YOUR_TURN = "not_your_turn"
    NOT_A_PARTICIPANT = "not_a_participant"
    UNKNOWN_MATCH = "unknown_match"
    OPPONENT_UNRESOLVABLE = "opponent_unresolvable"  # Not fatal - opponent falls back to policy control
    SETTLEMENT_FAILURE = "settlement_failure"


@dataclass
class Participant:
    """One side of a match.

    A participant without an actor_id is controlled by the opponent policy.
    Hit points are clamped to [0, MAX_HP] by every mutation helper.
    """

    display_name: str
    actor_id: int | None = None
    hit_points: int = MAX_HP
    guarding: bool = False

    def __post_init__(self) -> None:
        self.hit_points = _clamp_hp(self.hit_points)

    @property
    def is_policy_controlled(self) -> bool:
        return self.actor_id is None

    def is_alive(self) -> bool:
        """Check if the participant still has HP left."""
        return self.hit_points > 0

    def take_damage(self, amount: int) -> int:
        """Apply damage. Returns actual HP lost."""
        before = self.hit_points
        self.hit_points = _clamp_hp(self.hit_points - amount)
        return before - self.hit_points

    def heal(self, amount: int) -> int:
        """Apply healing. Returns actual HP restored."""
        before = self.hit_points
        self.hit_points = _clamp_hp(self.hit_points + amount)
        return self.hit_points - before

    def snapshot(self) -> "ParticipantSnapshot":
        return ParticipantSnapshot(
            display_name=self.display_name,
            actor_id=self.actor_id,
            hit_points=self.hit_points,
            guarding=self.guarding,
            is_policy_controlled=self.is_policy_controlled,
        )


def _clamp_hp(value: int) -> int:
    return max(0, min(MAX_HP, value))


@dataclass
class Match:
    """In-memory state of one duel.

    The wager is fixed at creation. The pot equals the wager (only the
    challenger stakes) and is paid out doubled to a winning actor.
    """

    match_id: str
    challenger: Participant
    opponent: Participant
    wager: int = 0
    pot: int = 0
    chat_id: int | None = None
    turn_owner: Side = Side.CHALLENGER
    phase: MatchPhase = MatchPhase.AWAITING_STAKE
    outcome: DuelOutcome | None = None
    turn_number: int = 0  # Accepted turns so far
    resolved: bool = False  # Set on first entry into settlement
    last_log: str = ""
    created_at: float = field(default_factory=time.time)

    @property
    def terminal(self) -> bool:
        return self.phase is MatchPhase.TERMINAL

    @property
    def is_active(self) -> bool:
        return self.phase is MatchPhase.ACTIVE

    def participant(self, side: Side) -> Participant:
        return self.challenger if side is Side.CHALLENGER else self.opponent

    @property
    def current(self) -> Participant:
        """Participant owning the turn."""
        return self.participant(self.turn_owner)

    @property
    def waiting(self) -> Participant:
        """Participant not owning the turn."""
        return self.participant(self.turn_owner.other)

    def side_of(self, actor_id: int) -> Side | None:
        """Find which side an actor is bound to."""
        if self.challenger.actor_id == actor_id:
            return Side.CHALLENGER
        if self.opponent.actor_id == actor_id:
            return Side.OPPONENT
        return None

    def winner(self) -> Participant | None:
        if self.outcome is None or self.outcome.winner is None:
            return None
        return self.participant(self.outcome.winner)

    def snapshot(self, description: str = "") -> "MatchSnapshot":
        return MatchSnapshot(
            match_id=self.match_id,
            challenger=self.challenger.snapshot(),
            opponent=self.opponent.snapshot(),
            wager=self.wager,
            pot=self.pot,
            turn_owner=self.turn_owner,
            turn_number=self.turn_number,
            phase=self.phase,
            outcome=self.outcome,
            last_log=self.last_log,
            description=description,
        )


@dataclass(frozen=True)
class ParticipantSnapshot:
    """Read-only view of a participant for rendering."""

    display_name: str
    actor_id: int | None
    hit_points: int
    guarding: bool
    is_policy_controlled: bool


@dataclass(frozen=True)
class MatchSnapshot:
    """Read-only view of a match, emitted after creation, every turn and at the end."""

    match_id: str
    challenger: ParticipantSnapshot
    opponent: ParticipantSnapshot
    wager: int
    pot: int
    turn_owner: Side
    turn_number: int
    phase: MatchPhase
    outcome: DuelOutcome | None = None
    last_log: str = ""
    description: str = ""  # Terminal outcome text

    @property
    def terminal(self) -> bool:
        return self.phase is MatchPhase.TERMINAL

    @property
    def current(self) -> ParticipantSnapshot:
        return self.challenger if self.turn_owner is Side.CHALLENGER else self.opponent


@dataclass
class TurnOutcome:
    """Result of resolving a single action."""

    turn_number: int
    side: Side
    action: DuelAction
    value: int = 0  # Damage dealt or HP restored
    guard_absorbed: bool = False  # Strike was halved by the defender's guard
    log_line: str = ""
    is_terminal: bool = False
