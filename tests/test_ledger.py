"""Integration tests for the ledger, player registration and opponent lookup."""

import pytest
from conftest import make_orchestrator
from sqlalchemy import select

from vault_casino.db.models import ChatMember, DuelRecord, Wallet
from vault_casino.engine import MAX_AMOUNT, DuelError, InsufficientFundsError, ResolvedActor
from vault_casino.services import ChatActorDirectory, LedgerService, PlayerService
from vault_casino.services.ledger import DAY_MS

ASH = 111111
VEX = 222222
CHAT = -1001


class TestWallets:
    """Tests for balance operations."""

    async def test_wallet_opened_with_starting_cash(self, ledger: LedgerService):
        assert await ledger.get_balance(ASH) == 5000

    async def test_credit(self, ledger: LedgerService):
        assert await ledger.credit(ASH, 250) == 5250
        assert await ledger.get_balance(ASH) == 5250

    async def test_debit(self, ledger: LedgerService):
        assert await ledger.debit(ASH, 1200) == 3800

    async def test_debit_exact_balance(self, ledger: LedgerService):
        assert await ledger.debit(ASH, 5000) == 0

    async def test_overdraft_writes_nothing(self, ledger: LedgerService):
        await ledger.debit(ASH, 4900)

        with pytest.raises(InsufficientFundsError) as exc_info:
            await ledger.debit(ASH, 500)

        assert exc_info.value.requested == 500
        assert exc_info.value.available == 100
        assert await ledger.get_balance(ASH) == 100

    @pytest.mark.parametrize("amount", [0, -5])
    async def test_non_positive_amounts_rejected(self, ledger: LedgerService, amount):
        with pytest.raises(ValueError):
            await ledger.credit(ASH, amount)
        with pytest.raises(ValueError):
            await ledger.debit(ASH, amount)

    async def test_custom_starting_cash(self, session_factory):
        ledger = LedgerService(session_factory, starting_cash=100)

        assert await ledger.get_balance(ASH) == 100

    async def test_sequential_duels_do_not_lose_updates(self, ledger: LedgerService):
        """Two matches staking from the same wallet both settle against fresh balances."""
        await ledger.debit(ASH, 100)
        await ledger.debit(ASH, 300)
        await ledger.credit(ASH, 200)
        await ledger.credit(ASH, 600)

        assert await ledger.get_balance(ASH) == 5400


class TestTransfer:
    """Tests for /give transfers."""

    async def test_transfer(self, ledger: LedgerService):
        result = await ledger.transfer(ASH, VEX, 700)

        assert result.from_balance == 4300
        assert result.to_balance == 5700

    async def test_transfer_insufficient(self, ledger: LedgerService):
        with pytest.raises(InsufficientFundsError):
            await ledger.transfer(ASH, VEX, 9000)

        assert await ledger.get_balance(ASH) == 5000
        assert await ledger.get_balance(VEX) == 5000

    async def test_transfer_to_self(self, ledger: LedgerService):
        with pytest.raises(ValueError):
            await ledger.transfer(ASH, ASH, 10)

    async def test_transfer_non_positive(self, ledger: LedgerService):
        with pytest.raises(ValueError):
            await ledger.transfer(ASH, VEX, 0)


class TestProgression:
    """Tests for XP grants."""

    async def test_grant_xp_levels_up(self, ledger: LedgerService):
        progress = await ledger.grant_xp(ASH, 60)
        assert (progress.xp, progress.level) == (60, 1)

        progress = await ledger.grant_xp(ASH, 60)
        assert (progress.xp, progress.level) == (120, 2)

        stored = await ledger.get_progress(ASH)
        assert (stored.xp, stored.level) == (120, 2)

    async def test_negative_xp_rejected(self, ledger: LedgerService):
        with pytest.raises(ValueError):
            await ledger.grant_xp(ASH, -1)


class TestDaily:
    """Tests for the daily allowance."""

    async def test_daily_cooldown(self, ledger: LedgerService):
        now = 1_700_000_000_000

        first = await ledger.grant_daily(ASH, now_ms=now)
        assert first.ok
        assert first.amount == 1000
        assert first.balance == 6000

        second = await ledger.grant_daily(ASH, now_ms=now + 60_000)
        assert not second.ok
        assert second.balance == 6000
        assert second.ms_remaining == DAY_MS - 60_000

        third = await ledger.grant_daily(ASH, now_ms=now + DAY_MS)
        assert third.ok
        assert third.balance == 7000


class TestHistory:
    """Tests for leaderboard and duel records."""

    async def test_leaderboard_order(self, ledger: LedgerService):
        await ledger.credit(VEX, 500)
        await ledger.debit(ASH, 500)
        await ledger.get_balance(333333)

        wallets = await ledger.leaderboard(limit=2)

        assert [w.user_id for w in wallets] == [VEX, 333333]

    async def test_append_and_list_duel_records(self, ledger: LedgerService, session_factory):
        await ledger.append_duel_record("Ash", "Vex", "Vex", 100)
        record = await ledger.append_duel_record("Ash", "Shade", "Ash", 0)

        assert record.id is not None
        recent = await ledger.recent_duels()
        assert [(r.winner_name, r.wager) for r in recent] == [("Ash", 0), ("Vex", 100)]

        async with session_factory() as session:
            count = len((await session.execute(select(DuelRecord))).scalars().all())
        assert count == 2


class TestPlayerService:
    """Tests for registration and chat membership."""

    async def test_register_creates_wallet_and_membership(self, session_factory):
        async with session_factory() as session:
            wallet = await PlayerService(session).register(ASH, "Ash Ketch", "ash", chat_id=CHAT)
            await session.commit()

        assert wallet.balance == 5000
        async with session_factory() as session:
            members = (await session.execute(select(ChatMember))).scalars().all()
        assert [(m.chat_id, m.user_id) for m in members] == [(CHAT, ASH)]

    async def test_register_is_idempotent_and_updates_names(self, session_factory):
        async with session_factory() as session:
            service = PlayerService(session)
            await service.register(ASH, "Ash", "ash", chat_id=CHAT)
            await service.register(ASH, "Ash the Bold", "ash_bold", chat_id=CHAT)
            await session.commit()

        async with session_factory() as session:
            wallet = await session.get(Wallet, ASH)
            members = (await session.execute(select(ChatMember))).scalars().all()
        assert wallet.display_name == "Ash the Bold"
        assert wallet.username == "ash_bold"
        assert len(members) == 1

    async def test_register_keeps_existing_balance(self, session_factory, ledger: LedgerService):
        await ledger.credit(ASH, 1000)

        async with session_factory() as session:
            wallet = await PlayerService(session).register(ASH, "Ash")
            await session.commit()

        assert wallet.balance == 6000


class TestChatActorDirectory:
    """Tests for resolving typed names to users."""

    @pytest.fixture
    async def directory(self, session_factory) -> ChatActorDirectory:
        async with session_factory() as session:
            service = PlayerService(session)
            await service.register(ASH, "Ash Ketch", "ash", chat_id=CHAT)
            await service.register(VEX, "Vex", "vex_the_red", chat_id=CHAT)
            await service.register(444444, "Mira", None, chat_id=-2002)
            await session.commit()
        return ChatActorDirectory(session_factory)

    async def test_resolve_by_username(self, directory):
        assert await directory.resolve("@Vex_The_Red", CHAT) == ResolvedActor(VEX, "Vex")

    async def test_resolve_by_display_name(self, directory):
        assert await directory.resolve("ash ketch", CHAT) == ResolvedActor(ASH, "Ash Ketch")

    async def test_resolve_by_user_id(self, directory):
        assert await directory.resolve(str(VEX), CHAT) == ResolvedActor(VEX, "Vex")

    async def test_scoped_to_chat(self, directory):
        assert await directory.resolve("Mira", CHAT) is None
        assert await directory.resolve("Mira", -2002) == ResolvedActor(444444, "Mira")

    async def test_unscoped_lookup(self, directory):
        assert await directory.resolve("Mira") == ResolvedActor(444444, "Mira")

    async def test_unknown_and_blank(self, directory):
        assert await directory.resolve("Nobody", CHAT) is None
        assert await directory.resolve("   ", CHAT) is None


class TestAmountLimits:
    """Amounts beyond a 64-bit wallet are rejected before touching the database."""

    async def test_oversized_amounts_rejected(self, ledger: LedgerService):
        with pytest.raises(ValueError):
            await ledger.credit(ASH, MAX_AMOUNT + 1)
        with pytest.raises(ValueError):
            await ledger.debit(ASH, 10**20)
        with pytest.raises(ValueError):
            await ledger.transfer(ASH, VEX, 10**20)

        assert await ledger.get_balance(ASH) == 5000

    async def test_oversized_duel_wager_is_rejected(self, ledger: LedgerService, scheduler):
        orchestrator = make_orchestrator(ledger, scheduler)

        result = await orchestrator.create_match(ASH, "Ash", "Goblin", wager=1e20)

        assert not result.success
        assert result.error is DuelError.INVALID_WAGER
        assert orchestrator.matches == {}
        assert await ledger.get_balance(ASH) == 5000
