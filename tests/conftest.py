"""Shared fixtures for engine and integration tests."""

import random
from itertools import count

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from vault_casino.db.models import Base
from vault_casino.engine import InsufficientFundsError, MatchOrchestrator, ResolvedActor
from vault_casino.services import LedgerService
from vault_casino.utils.progression import Progress, calculate_level

CHALLENGER_ID = 111111
OPPONENT_ID = 222222
OUTSIDER_ID = 333333


class ScriptedRandom:
    """Random source that plays back queued rolls and choices.

    Falls back to a seeded generator once a queue runs dry.
    """

    def __init__(self, rolls=(), choices=()):
        self.rolls = list(rolls)
        self.choices = list(choices)
        self._fallback = random.Random(1234)

    def randint(self, a: int, b: int) -> int:
        if self.rolls:
            value = self.rolls.pop(0)
            assert a <= value <= b, f"scripted roll {value} outside [{a}, {b}]"
            return value
        return self._fallback.randint(a, b)

    def choice(self, seq):
        if self.choices:
            value = self.choices.pop(0)
            assert value in seq
            return value
        return self._fallback.choice(seq)


class ManualCall:
    """Pending call of the manual scheduler."""

    def __init__(self, when: float, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> bool:
        self.cancelled = True
        return True


class ManualScheduler:
    """Scheduler driven by advance() instead of the event loop clock."""

    def __init__(self):
        self.now = 0.0
        self.calls: list[ManualCall] = []

    def call_later(self, delay: float, callback) -> ManualCall:
        call = ManualCall(self.now + delay, callback)
        self.calls.append(call)
        return call

    @property
    def pending(self) -> list[ManualCall]:
        return [c for c in self.calls if not c.cancelled and not c.fired]

    async def advance(self, seconds: float) -> None:
        """Move time forward, firing due callbacks in order."""
        target = self.now + seconds
        while True:
            due = [c for c in self.pending if c.when <= target]
            if not due:
                break
            call = min(due, key=lambda c: c.when)
            self.now = max(self.now, call.when)
            call.fired = True
            await call.callback()
        self.now = target


class StaticDirectory:
    """Actor directory backed by a fixed name map."""

    def __init__(self, actors: dict[str, ResolvedActor] | None = None):
        self.actors = {name.lower(): actor for name, actor in (actors or {}).items()}
        self.lookups: list[tuple[str, int | None]] = []

    async def resolve(self, name: str, chat_id: int | None = None) -> ResolvedActor | None:
        self.lookups.append((name, chat_id))
        return self.actors.get(name.lower())


class MemoryLedger:
    """In-memory ledger recording every successful mutation."""

    def __init__(self, balances: dict[int, int] | None = None, starting_cash: int = 5000):
        self.starting_cash = starting_cash
        self.balances: dict[int, int] = dict(balances or {})
        self.xp: dict[int, int] = {}
        self.records: list[tuple[str, str, str, int]] = []
        self.mutations: list[tuple] = []

    async def get_balance(self, user_id: int) -> int:
        return self.balances.setdefault(user_id, self.starting_cash)

    async def credit(self, user_id: int, amount: int) -> int:
        balance = await self.get_balance(user_id) + amount
        self.balances[user_id] = balance
        self.mutations.append(("credit", user_id, amount))
        return balance

    async def debit(self, user_id: int, amount: int) -> int:
        balance = await self.get_balance(user_id)
        if balance < amount:
            raise InsufficientFundsError(user_id, amount, balance)
        self.balances[user_id] = balance - amount
        self.mutations.append(("debit", user_id, amount))
        return balance - amount

    async def grant_xp(self, user_id: int, amount: int) -> Progress:
        xp = self.xp.get(user_id, 0) + amount
        self.xp[user_id] = xp
        self.mutations.append(("xp", user_id, amount))
        return Progress(xp=xp, level=calculate_level(xp))

    async def append_duel_record(self, challenger_name: str, opponent_name: str, winner_name: str, wager: int):
        self.records.append((challenger_name, opponent_name, winner_name, wager))
        self.mutations.append(("record", winner_name, wager))


class FailingLedger(MemoryLedger):
    """Memory ledger whose chosen operations raise."""

    def __init__(self, fail_on: set[str], **kwargs):
        super().__init__(**kwargs)
        self.fail_on = fail_on

    async def credit(self, user_id: int, amount: int) -> int:
        if "credit" in self.fail_on:
            raise RuntimeError("ledger offline")
        return await super().credit(user_id, amount)

    async def grant_xp(self, user_id: int, amount: int) -> Progress:
        if "grant_xp" in self.fail_on:
            raise RuntimeError("ledger offline")
        return await super().grant_xp(user_id, amount)


@pytest.fixture
async def async_engine():
    """Create async SQLite in-memory engine for testing.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(session_factory):
    """Create async session for testing with automatic rollback."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def ledger(session_factory) -> LedgerService:
    return LedgerService(session_factory, starting_cash=5000, daily_amount=1000)


@pytest.fixture
def memory_ledger() -> MemoryLedger:
    return MemoryLedger()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def directory() -> StaticDirectory:
    return StaticDirectory(
        {
            "Vex": ResolvedActor(actor_id=OPPONENT_ID, display_name="Vex"),
            "Ash": ResolvedActor(actor_id=CHALLENGER_ID, display_name="Ash"),
        }
    )


def make_orchestrator(ledger, scheduler, rng=None, directory=None, **kwargs) -> MatchOrchestrator:
    """Orchestrator with sequential match ids m1, m2, ..."""
    ids = count(1)
    return MatchOrchestrator(
        ledger,
        directory=directory,
        scheduler=scheduler,
        rng=rng or ScriptedRandom(),
        id_factory=lambda: f"m{next(ids)}",
        **kwargs,
    )
