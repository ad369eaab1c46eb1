"""Wager escrow - holds the challenger's stake until the match settles."""

import logging
import math

from .interfaces import MAX_AMOUNT, Ledger

logger = logging.getLogger(__name__)

# A winner is paid twice the wager, which must still fit a wallet
MAX_WAGER = MAX_AMOUNT // 2


class InvalidWagerError(ValueError):
    """Wager is negative, non-finite, too large or not a number."""


class WagerEscrow:
    """Moves stakes in and out of wallets through the ledger.

    Only the challenger stakes. The held amount is not kept in any wallet -
    it lives on the match as its pot until settlement.
    """

    def __init__(self, ledger: Ledger) -> None:
        self.ledger = ledger

    @staticmethod
    def validate(wager: object) -> int:
        """Normalize a wager to a whole non-negative amount.

        Fractional amounts are floored.

        Raises:
            InvalidWagerError: For negative, non-finite, oversized, boolean or non-numeric input
        """
        if isinstance(wager, bool) or not isinstance(wager, (int, float)):
            raise InvalidWagerError(f"Wager must be a number, got {wager!r}")
        if isinstance(wager, float):
            if not math.isfinite(wager):
                raise InvalidWagerError(f"Wager must be finite, got {wager!r}")
            wager = math.floor(wager)
        if wager < 0:
            raise InvalidWagerError(f"Wager cannot be negative, got {wager}")
        if wager > MAX_WAGER:
            raise InvalidWagerError(f"Wager cannot exceed {MAX_WAGER}, got {wager}")
        return int(wager)

    async def hold(self, actor_id: int, wager: int) -> None:
        """Debit the stake. Raises InsufficientFundsError, leaving the wallet untouched."""
        if wager <= 0:
            return
        balance = await self.ledger.debit(actor_id, wager)
        logger.info(f"Escrowed {wager} from user {actor_id} (balance now {balance})")

    async def refund(self, actor_id: int | None, wager: int) -> bool:
        """Return a stake to the staker. Returns True if anything was credited."""
        if actor_id is None or wager <= 0:
            return False
        await self.ledger.credit(actor_id, wager)
        logger.info(f"Refunded {wager} to user {actor_id}")
        return True

    async def pay_out(self, actor_id: int | None, amount: int) -> bool:
        """Pay winnings. A policy-controlled winner (no actor) receives nothing."""
        if actor_id is None or amount <= 0:
            return False
        await self.ledger.credit(actor_id, amount)
        logger.info(f"Paid out {amount} to user {actor_id}")
        return True
