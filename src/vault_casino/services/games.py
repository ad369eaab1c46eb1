"""Casino games - coinflip, slots and blackjack staked from a wallet."""

import logging
import random
from dataclasses import dataclass
from enum import Enum

from ..engine.escrow import InvalidWagerError, WagerEscrow
from ..engine.interfaces import Ledger
from ..utils.progression import Progress

logger = logging.getLogger(__name__)

COINFLIP_SIDES = ("heads", "tails")

SEVEN = "7️⃣"
# One reel - symbol frequency is its weight (30/30/20/15/5 percent)
SLOT_REEL = ("🍒",) * 6 + ("🍋",) * 6 + ("🔔",) * 4 + ("⭐",) * 3 + (SEVEN,)
SLOTS_JACKPOT_MULTIPLIER = 15
SLOTS_TRIPLE_MULTIPLIER = 5

CARD_VALUES = {
    "A": 11,
    "K": 10,
    "Q": 10,
    "J": 10,
    "10": 10,
    "9": 9,
    "8": 8,
    "7": 7,
    "6": 6,
    "5": 5,
    "4": 4,
    "3": 3,
    "2": 2,
}
DECK = tuple(CARD_VALUES)
BLACKJACK = 21
PLAYER_STANDS_AT = 16
DEALER_STANDS_AT = 17

# XP per round played, win or lose
GAME_XP = {"coinflip": 10, "slots": 20, "blackjack": 0}


class BlackjackOutcome(str, Enum):
    WIN = "win"
    PUSH = "push"
    LOSE = "lose"


@dataclass
class GameResult:
    """Outcome of one round, after the ledger has been updated."""

    wager: int
    payout: int
    balance: int
    progress: Progress | None

    @property
    def won(self) -> bool:
        return self.payout > self.wager

    @property
    def net(self) -> int:
        return self.payout - self.wager


@dataclass
class CoinflipResult(GameResult):
    pick: str
    roll: str


@dataclass
class SlotsResult(GameResult):
    reels: tuple[str, str, str]


@dataclass
class BlackjackResult(GameResult):
    player_hand: list[str]
    dealer_hand: list[str]
    player_score: int
    dealer_score: int
    outcome: BlackjackOutcome


def slots_payout(reels: tuple[str, str, str], wager: int) -> int:
    """Three of a kind pays 5x (15x for sevens), any pair pays 1.5x."""
    a, b, c = reels
    if a == b == c:
        return wager * (SLOTS_JACKPOT_MULTIPLIER if a == SEVEN else SLOTS_TRIPLE_MULTIPLIER)
    if a == b or b == c or a == c:
        # 1.5x, halves round up
        return (wager * 3 + 1) // 2
    return 0


def hand_score(hand: list[str]) -> int:
    """Blackjack total - aces count 11 until that would bust."""
    total = sum(CARD_VALUES[card] for card in hand)
    aces = hand.count("A")
    while total > BLACKJACK and aces:
        total -= 10
        aces -= 1
    return total


def blackjack_outcome(player_score: int, dealer_score: int) -> BlackjackOutcome:
    if player_score > BLACKJACK:
        return BlackjackOutcome.LOSE
    if dealer_score > BLACKJACK or player_score > dealer_score:
        return BlackjackOutcome.WIN
    if player_score == dealer_score:
        return BlackjackOutcome.PUSH
    return BlackjackOutcome.LOSE


class CasinoService:
    """House games played against a wallet.

    Each round debits the stake first, so a player who cannot afford it gets
    InsufficientFundsError and nothing is rolled. Winnings are credited
    after the roll.
    """

    def __init__(self, ledger: Ledger, rng: random.Random | None = None) -> None:
        self.ledger = ledger
        self.rng = rng or random.Random()

    async def coinflip(self, user_id: int, wager: int | float, pick: str) -> CoinflipResult:
        """Call heads or tails. A correct call pays double."""
        pick = pick.strip().lower()
        if pick not in COINFLIP_SIDES:
            raise ValueError(f"Pick heads or tails, not '{pick}'")
        wager = await self._stake(user_id, wager)

        roll = self.rng.choice(COINFLIP_SIDES)
        payout = wager * 2 if roll == pick else 0

        balance, progress = await self._finish(user_id, "coinflip", wager, payout)
        return CoinflipResult(wager=wager, payout=payout, balance=balance, progress=progress, pick=pick, roll=roll)

    async def slots(self, user_id: int, wager: int | float) -> SlotsResult:
        """Spin three reels."""
        wager = await self._stake(user_id, wager)

        reels = (self.rng.choice(SLOT_REEL), self.rng.choice(SLOT_REEL), self.rng.choice(SLOT_REEL))
        payout = slots_payout(reels, wager)

        balance, progress = await self._finish(user_id, "slots", wager, payout)
        return SlotsResult(wager=wager, payout=payout, balance=balance, progress=progress, reels=reels)

    async def blackjack(self, user_id: int, wager: int | float) -> BlackjackResult:
        """Play one hand to a fixed strategy: hit below 16, dealer hits below 17.

        Cards are drawn with replacement. A win pays double, a push returns
        the stake.
        """
        wager = await self._stake(user_id, wager)

        player = [self._draw(), self._draw()]
        dealer = [self._draw(), self._draw()]
        while hand_score(player) < PLAYER_STANDS_AT:
            player.append(self._draw())
        while hand_score(dealer) < DEALER_STANDS_AT:
            dealer.append(self._draw())

        player_score = hand_score(player)
        dealer_score = hand_score(dealer)
        outcome = blackjack_outcome(player_score, dealer_score)
        payout = {BlackjackOutcome.WIN: wager * 2, BlackjackOutcome.PUSH: wager}.get(outcome, 0)

        balance, progress = await self._finish(user_id, "blackjack", wager, payout)
        return BlackjackResult(
            wager=wager,
            payout=payout,
            balance=balance,
            progress=progress,
            player_hand=player,
            dealer_hand=dealer,
            player_score=player_score,
            dealer_score=dealer_score,
            outcome=outcome,
        )

    def _draw(self) -> str:
        return self.rng.choice(DECK)

    async def _stake(self, user_id: int, wager: int | float) -> int:
        """Validate and debit the stake. Games need a positive wager."""
        wager = WagerEscrow.validate(wager)
        if wager == 0:
            raise InvalidWagerError("Wager must be positive")
        await self.ledger.debit(user_id, wager)
        return wager

    async def _finish(self, user_id: int, game: str, wager: int, payout: int) -> tuple[int, Progress | None]:
        if payout > 0:
            balance = await self.ledger.credit(user_id, payout)
        else:
            balance = await self.ledger.get_balance(user_id)

        progress = None
        if GAME_XP[game] > 0:
            progress = await self.ledger.grant_xp(user_id, GAME_XP[game])

        logger.info(f"User {user_id} played {game} for {wager}: paid {payout}, balance {balance}")
        return balance, progress
