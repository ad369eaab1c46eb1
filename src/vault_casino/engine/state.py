"""Duel state machine - phase transitions and turn arbitration for one match."""

from .types import DuelError, DuelOutcome, Match, MatchPhase, Side, TurnOutcome


def outcome_by_hit_points(match: Match) -> DuelOutcome:
    """Higher remaining HP wins, equal HP (a double knockout included) is a draw."""
    if match.challenger.hit_points > match.opponent.hit_points:
        return DuelOutcome.CHALLENGER_WINS
    if match.opponent.hit_points > match.challenger.hit_points:
        return DuelOutcome.OPPONENT_WINS
    return DuelOutcome.DRAW


class DuelStateMachine:
    """Owns the phase and turn order of a single match.

    AWAITING_STAKE -> ACTIVE -> TERMINAL. Terminal is final: nothing moves a
    match out of it.
    """

    def __init__(self, match: Match) -> None:
        self.match = match

    @property
    def phase(self) -> MatchPhase:
        return self.match.phase

    def activate(self) -> None:
        """The stake is held - the challenger takes the first turn."""
        if self.match.phase is not MatchPhase.AWAITING_STAKE:
            raise ValueError(f"Match {self.match.match_id} is {self.match.phase.value}, cannot activate")
        self.match.phase = MatchPhase.ACTIVE
        self.match.turn_owner = Side.CHALLENGER

    def check_actor(self, actor_id: int) -> DuelError | None:
        """Check whether an actor may act right now. Returns the rejection, if any."""
        if self.match.phase is not MatchPhase.ACTIVE:
            return DuelError.UNKNOWN_MATCH

        side = self.match.side_of(actor_id)
        if side is None:
            return DuelError.NOT_A_PARTICIPANT

        # A policy-controlled turn never accepts human input
        if side is not self.match.turn_owner:
            return DuelError.NOT_YOUR_TURN

        return None

    def record_turn(self, outcome: TurnOutcome) -> None:
        """Advance after a resolved action: end the match or pass the turn."""
        if self.match.phase is not MatchPhase.ACTIVE:
            raise ValueError(f"Match {self.match.match_id} is {self.match.phase.value}, cannot record a turn")

        self.match.turn_number += 1
        self.match.last_log = outcome.log_line

        if not self.match.challenger.is_alive() or not self.match.opponent.is_alive():
            self._finish(outcome_by_hit_points(self.match))
            outcome.is_terminal = True
        else:
            self.match.turn_owner = self.match.turn_owner.other

    def expire(self) -> DuelOutcome:
        """Timeout path - decide the match on remaining HP.

        A match where nobody ever acted against a live opponent is abandoned.
        A policy opponent is always present, so its matches are decided on HP.
        Calling this on a terminal match keeps the existing outcome.
        """
        if self.match.phase is MatchPhase.TERMINAL:
            if self.match.outcome is None:
                raise ValueError(f"Match {self.match.match_id} is terminal without an outcome")
            return self.match.outcome

        if self.match.turn_number == 0 and not self.match.opponent.is_policy_controlled:
            outcome = DuelOutcome.ABANDONED
        else:
            outcome = outcome_by_hit_points(self.match)
        self._finish(outcome)
        return outcome

    def _finish(self, outcome: DuelOutcome) -> None:
        self.match.phase = MatchPhase.TERMINAL
        self.match.outcome = outcome
