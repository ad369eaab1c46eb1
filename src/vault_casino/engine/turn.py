"""Turn resolver - applies one action of the turn owner to the match."""

import random

from .types import DuelAction, Match, Participant, TurnOutcome

# Damage / heal ranges (inclusive). Live players roll more generously than the policy.
ACTOR_STRIKE_RANGE = (14, 24)
POLICY_STRIKE_RANGE = (12, 20)
ACTOR_RECOVER_RANGE = (8, 16)
POLICY_RECOVER_RANGE = (6, 14)

GUARD_DAMAGE_MULTIPLIER = 0.5


def guarded_damage(damage: int) -> int:
    """Damage that gets through a guard - halved, floored, at least 1."""
    return max(1, int(damage * GUARD_DAMAGE_MULTIPLIER))


class TurnResolver:
    """Resolves a single action against the current match state.

    Only mutates in-memory participant state. Ledger access happens at
    escrow and settlement, never per turn.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def resolve(self, match: Match, action: DuelAction) -> TurnOutcome:
        """Apply the turn owner's action.

        Args:
            match: Active match; the actor is match.current
            action: Action to apply

        Returns:
            TurnOutcome with the value rolled and a log line. is_terminal is
            set when either side dropped to 0 HP.
        """
        actor = match.current
        target = match.waiting

        match action:
            case DuelAction.STRIKE:
                outcome = self._strike(match, actor, target)
            case DuelAction.GUARD:
                outcome = self._guard(match, actor)
            case DuelAction.RECOVER:
                outcome = self._recover(match, actor)
            case _:
                raise ValueError(f"Unknown action: {action}")

        outcome.is_terminal = not actor.is_alive() or not target.is_alive()
        return outcome

    def _strike(self, match: Match, actor: Participant, target: Participant) -> TurnOutcome:
        low, high = POLICY_STRIKE_RANGE if actor.is_policy_controlled else ACTOR_STRIKE_RANGE
        damage = self.rng.randint(low, high)

        guard_absorbed = target.guarding
        if guard_absorbed:
            damage = guarded_damage(damage)
        # Guard is spent by any incoming strike
        target.guarding = False
        target.take_damage(damage)

        if actor.is_policy_controlled:
            log_line = f"{actor.display_name} unleashes a shadow strike for {damage} damage!"
        else:
            log_line = f"{actor.display_name} strikes for {damage} damage!"

        return TurnOutcome(
            turn_number=match.turn_number + 1,
            side=match.turn_owner,
            action=DuelAction.STRIKE,
            value=damage,
            guard_absorbed=guard_absorbed,
            log_line=log_line,
        )

    def _guard(self, match: Match, actor: Participant) -> TurnOutcome:
        actor.guarding = True

        if actor.is_policy_controlled:
            log_line = f"{actor.display_name} fortifies their stance."
        else:
            log_line = f"{actor.display_name} braces for impact."

        return TurnOutcome(
            turn_number=match.turn_number + 1,
            side=match.turn_owner,
            action=DuelAction.GUARD,
            log_line=log_line,
        )

    def _recover(self, match: Match, actor: Participant) -> TurnOutcome:
        low, high = POLICY_RECOVER_RANGE if actor.is_policy_controlled else ACTOR_RECOVER_RANGE
        restored = actor.heal(self.rng.randint(low, high))
        actor.guarding = False

        if actor.is_policy_controlled:
            log_line = f"{actor.display_name} channels vaultlight and restores {restored} vitality."
        else:
            log_line = f"{actor.display_name} channels fate and restores {restored} vitality."

        return TurnOutcome(
            turn_number=match.turn_number + 1,
            side=match.turn_owner,
            action=DuelAction.RECOVER,
            value=restored,
            log_line=log_line,
        )
