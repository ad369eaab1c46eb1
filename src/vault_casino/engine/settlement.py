"""Settlement - pays out, grants XP and records history for a finished match."""

import logging
from dataclasses import dataclass, field

from .escrow import WagerEscrow
from .interfaces import Ledger
from .state import outcome_by_hit_points
from .types import DuelError, DuelOutcome, Match, Side

logger = logging.getLogger(__name__)


@dataclass
class SettlementResult:
    """What settlement did for a match."""

    outcome: DuelOutcome
    winner_name: str | None = None
    payout: int = 0  # Credited to the winner
    refund: int = 0  # Credited back to the challenger
    xp_awards: dict[Side, int] = field(default_factory=dict)
    record_written: bool = False
    error: DuelError | None = None
    error_message: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


def describe_outcome(match: Match) -> str:
    """Terminal description shown under the final match state."""
    match match.outcome:
        case DuelOutcome.CHALLENGER_WINS | DuelOutcome.OPPONENT_WINS:
            winner = match.winner()
            return f"🏁 {winner.display_name} claims victory!"
        case DuelOutcome.DRAW:
            return "The duel ends in a stalemate. The Vault keeps its secrets."
        case DuelOutcome.ABANDONED:
            return "The duel was abandoned. The Vault returns the stake."
        case _:
            return ""


class Settlement:
    """Runs at most once per match.

    The match's resolved flag is set before any ledger call, so a second
    entry (natural end racing the timeout) is a no-op. A ledger failure is
    logged and not retried - payouts are at-most-once.
    """

    def __init__(
        self,
        ledger: Ledger,
        win_xp: int = 60,
        loss_xp: int = 25,
        draw_xp: int = 0,
    ) -> None:
        self.ledger = ledger
        self.escrow = WagerEscrow(ledger)
        self.win_xp = win_xp
        self.loss_xp = loss_xp
        self.draw_xp = draw_xp

    async def settle(self, match: Match) -> SettlementResult | None:
        """Settle a terminal match.

        Args:
            match: Match in the terminal phase

        Returns:
            SettlementResult, or None if the match was already settled
        """
        if match.resolved:
            return None
        match.resolved = True

        if match.outcome is None:
            match.outcome = outcome_by_hit_points(match)

        result = SettlementResult(outcome=match.outcome)
        try:
            if match.outcome.winner is None:
                await self._settle_without_winner(match, result)
            else:
                await self._settle_win(match, match.outcome.winner, result)
        except Exception as e:
            logger.exception(f"Settlement of match {match.match_id} failed: {e}")
            result.error = DuelError.SETTLEMENT_FAILURE
            result.error_message = str(e)

        return result

    async def _settle_without_winner(self, match: Match, result: SettlementResult) -> None:
        """Draw or abandoned - the challenger gets the wager back."""
        if await self.escrow.refund(match.challenger.actor_id, match.wager):
            result.refund = match.wager

        if match.outcome is DuelOutcome.DRAW and self.draw_xp > 0:
            for side in (Side.CHALLENGER, Side.OPPONENT):
                actor_id = match.participant(side).actor_id
                if actor_id is not None:
                    await self.ledger.grant_xp(actor_id, self.draw_xp)
                    result.xp_awards[side] = self.draw_xp

    async def _settle_win(self, match: Match, winner_side: Side, result: SettlementResult) -> None:
        winner = match.participant(winner_side)
        loser = match.participant(winner_side.other)
        result.winner_name = winner.display_name

        # Only the challenger staked - the house covers the other half of the payout
        if match.wager > 0 and await self.escrow.pay_out(winner.actor_id, match.pot * 2):
            result.payout = match.pot * 2

        if winner.actor_id is not None:
            await self.ledger.grant_xp(winner.actor_id, self.win_xp)
            result.xp_awards[winner_side] = self.win_xp
        if loser.actor_id is not None:
            await self.ledger.grant_xp(loser.actor_id, self.loss_xp)
            result.xp_awards[winner_side.other] = self.loss_xp

        await self.ledger.append_duel_record(
            match.challenger.display_name,
            match.opponent.display_name,
            winner.display_name,
            match.wager,
        )
        result.record_written = True
