"""Tests for bot rendering and argument parsing helpers."""

from aiogram.types import User

from vault_casino.bot.handlers.duels import (
    format_footer,
    format_match,
    get_action_keyboard,
    hp_bar,
    parse_action_data,
    parse_wager,
)
from vault_casino.bot.handlers.economy import format_cooldown
from vault_casino.bot.handlers.games import format_blackjack, format_coinflip, format_slots
from vault_casino.bot.utils import format_money, get_display_name, parse_command_args
from vault_casino.engine.types import (
    DuelOutcome,
    MatchPhase,
    MatchSnapshot,
    ParticipantSnapshot,
    Side,
)
from vault_casino.services.games import BlackjackOutcome, BlackjackResult, CoinflipResult, SlotsResult
from vault_casino.utils.progression import Progress


def make_snapshot(**overrides) -> MatchSnapshot:
    values = dict(
        match_id="abc123",
        challenger=ParticipantSnapshot(
            display_name="Ash", actor_id=1, hit_points=100, guarding=False, is_policy_controlled=False
        ),
        opponent=ParticipantSnapshot(
            display_name="Shade", actor_id=None, hit_points=80, guarding=True, is_policy_controlled=True
        ),
        wager=100,
        pot=100,
        turn_owner=Side.OPPONENT,
        turn_number=1,
        phase=MatchPhase.ACTIVE,
        last_log="Ash strikes for 20 damage!",
    )
    values.update(overrides)
    return MatchSnapshot(**values)


class TestHpBar:
    """Tests for the hit point bar."""

    def test_full_and_empty(self):
        assert hp_bar(100) == "██████████"
        assert hp_bar(0) == "░░░░░░░░░░"

    def test_partial(self):
        assert hp_bar(50) == "█████░░░░░"
        assert len(hp_bar(37)) == 10


class TestFormatMatch:
    """Tests for match rendering."""

    def test_active_match(self):
        text = format_match(make_snapshot())

        assert "Turn: <b>Shade</b>" in text
        assert "<b>Ash</b>" in text
        assert "100/100" in text
        assert "80/100" in text
        assert "🛡️ Guarded" in text
        assert "🤖" in text
        assert "Pot: $100" in text
        assert "Ash strikes for 20 damage!" in text

    def test_terminal_match(self):
        snapshot = make_snapshot(
            phase=MatchPhase.TERMINAL,
            outcome=DuelOutcome.CHALLENGER_WINS,
            description="🏁 Ash claims victory!",
        )

        text = format_match(snapshot)

        assert "🏁 Ash claims victory!" in text
        assert "Turn:" not in text

    def test_names_are_escaped(self):
        challenger = ParticipantSnapshot(
            display_name="<script>", actor_id=1, hit_points=100, guarding=False, is_policy_controlled=False
        )

        text = format_match(make_snapshot(challenger=challenger))

        assert "<script>" not in text
        assert "&lt;script&gt;" in text

    def test_friendly_footer(self):
        assert format_footer(make_snapshot(wager=0, pot=0, last_log="")) == "Friendly duel"
        assert format_footer(make_snapshot(wager=0, pot=0)) == "Ash strikes for 20 damage!"


class TestCallbackData:
    """Tests for action buttons."""

    def test_keyboard_buttons(self):
        keyboard = get_action_keyboard("abc123")
        buttons = keyboard.inline_keyboard[0]

        assert [b.text for b in buttons] == ["⚔️ Strike", "🛡️ Guard", "✨ Channel Fate"]
        assert [b.callback_data for b in buttons] == [
            "duel:abc123:strike",
            "duel:abc123:guard",
            "duel:abc123:recover",
        ]

    def test_parse_action_data(self):
        assert parse_action_data("duel:abc123:strike") == ("abc123", "strike")
        assert parse_action_data("duel:abc123") is None
        assert parse_action_data("duel::strike") is None
        assert parse_action_data("other:abc:strike") is None


class TestArgumentParsing:
    """Tests for command argument helpers."""

    def test_quoted_names(self):
        assert parse_command_args('"Iron Maw" Vex 200') == ["Iron Maw", "Vex", "200"]

    def test_unbalanced_quotes_fall_back(self):
        assert parse_command_args('"Iron Maw Vex') == ['"Iron', "Maw", "Vex"]

    def test_empty(self):
        assert parse_command_args(None) == []
        assert parse_command_args("") == []

    def test_parse_wager(self):
        assert parse_wager(None) == 0
        assert parse_wager("1,500") == 1500.0
        assert parse_wager("12.5") == 12.5
        assert parse_wager("lots") is None


class TestFormatting:
    """Tests for small display helpers."""

    def test_format_money(self):
        assert format_money(5000) == "$5,000"

    def test_format_cooldown(self):
        assert format_cooldown(3 * 3_600_000 + 25 * 60_000) == "3h 25m"
        assert format_cooldown(59 * 60_000) == "59m"
        assert format_cooldown(-5) == "0m"

    def test_display_name(self):
        assert get_display_name(None) == "Unknown"
        assert get_display_name(User(id=1, is_bot=False, first_name="Ash", last_name="Ketch")) == "Ash Ketch"


class TestGameRendering:
    """Tests for casino result messages."""

    def test_coinflip(self):
        result = CoinflipResult(wager=100, payout=200, balance=5100, progress=None, pick="heads", roll="heads")

        text = format_coinflip(result)

        assert "<b>heads</b> → <b>heads</b>" in text
        assert "WIN $200" in text
        assert "Balance: $5,100" in text

    def test_slots_loss_with_xp(self):
        result = SlotsResult(
            wager=100, payout=0, balance=4900, progress=Progress(xp=20, level=1), reels=("🍒", "🍋", "🔔")
        )

        text = format_slots(result)

        assert "🍒 | 🍋 | 🔔" in text
        assert "LOSE" in text
        assert "20 XP (Level 1)" in text

    def test_blackjack_push(self):
        result = BlackjackResult(
            wager=100,
            payout=100,
            balance=5000,
            progress=None,
            player_hand=["10", "8"],
            dealer_hand=["J", "8"],
            player_score=18,
            dealer_score=18,
            outcome=BlackjackOutcome.PUSH,
        )

        text = format_blackjack(result)

        assert "<b>You:</b> 10 8 (18)" in text
        assert "<b>Dealer:</b> J 8 (18)" in text
        assert "PUSH" in text
        assert "WIN" not in text
