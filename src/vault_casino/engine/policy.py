"""Opponent controller - picks moves for participants without a live player."""

import random

from .types import DuelAction

# Equally weighted slots: strike 50%, guard 25%, recover 25%
POLICY_SLOTS: tuple[DuelAction, ...] = (
    DuelAction.STRIKE,
    DuelAction.STRIKE,
    DuelAction.GUARD,
    DuelAction.RECOVER,
)


class OpponentController:
    """Scripted weighted-random policy."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def choose_action(self) -> DuelAction:
        return self.rng.choice(POLICY_SLOTS)
