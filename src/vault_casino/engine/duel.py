"""Match orchestrator - drives duels from creation to settlement."""

import logging
import random
import uuid
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import partial

from .escrow import InvalidWagerError, WagerEscrow
from .interfaces import ActorDirectory, InsufficientFundsError, Ledger
from .logging import DuelLog, DuelLogger
from .policy import OpponentController
from .scheduling import AsyncioScheduler, ScheduledCall, Scheduler
from .settlement import Settlement, SettlementResult, describe_outcome
from .state import DuelStateMachine
from .turn import TurnResolver
from .types import DuelAction, DuelError, Match, MatchSnapshot, Participant, TurnOutcome

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[MatchSnapshot], Awaitable[None]]

# Logs of finished matches kept for inspection
COMPLETED_LOG_LIMIT = 100

REJECTION_MESSAGES: dict[DuelError, str] = {
    DuelError.INSUFFICIENT_FUNDS: "You cannot wager more than you hold.",
    DuelError.INVALID_WAGER: "The wager must be a non-negative amount the Vault can hold.",
    DuelError.NOT_YOUR_TURN: "Please wait for your turn.",
    DuelError.NOT_A_PARTICIPANT: "This duel does not involve you.",
    DuelError.UNKNOWN_MATCH: "This duel is no longer active.",
}


@dataclass
class MatchHandle:
    """Reference to a created match."""

    match_id: str
    snapshot: MatchSnapshot


@dataclass
class DuelResult:
    """Result of a duel operation."""

    success: bool
    message: str
    error: DuelError | None = None
    handle: MatchHandle | None = None
    turn: TurnOutcome | None = None
    snapshot: MatchSnapshot | None = None
    settlement: SettlementResult | None = None

    @property
    def match_id(self) -> str | None:
        if self.handle is not None:
            return self.handle.match_id
        if self.snapshot is not None:
            return self.snapshot.match_id
        return None


@dataclass
class ActiveMatch:
    """Registry entry - a match with its state machine, log, listeners and timers."""

    match: Match
    machine: DuelStateMachine
    logger: DuelLogger
    listeners: list[SnapshotListener] = field(default_factory=list)
    timeout_call: ScheduledCall | None = None
    policy_call: ScheduledCall | None = None


class MatchOrchestrator:
    """Binds matches to player input, the opponent policy and the clock.

    Each orchestrator owns its registry of active matches. Turn mutation
    happens synchronously between awaits, so two events for the same match
    can never interleave a turn; a second event simply finds the turn owner
    changed and is rejected.
    """

    def __init__(
        self,
        ledger: Ledger,
        directory: ActorDirectory | None = None,
        scheduler: Scheduler | None = None,
        rng: random.Random | None = None,
        *,
        timeout_seconds: float = 60.0,
        policy_delay_seconds: float = 1.2,
        win_xp: int = 60,
        loss_xp: int = 25,
        draw_xp: int = 0,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.ledger = ledger
        self.directory = directory
        self.scheduler = scheduler or AsyncioScheduler()
        rng = rng or random.Random()
        self.turn_resolver = TurnResolver(rng)
        self.opponent_controller = OpponentController(rng)
        self.escrow = WagerEscrow(ledger)
        self.settlement = Settlement(ledger, win_xp=win_xp, loss_xp=loss_xp, draw_xp=draw_xp)
        self.timeout_seconds = timeout_seconds
        self.policy_delay_seconds = policy_delay_seconds
        self.id_factory = id_factory or (lambda: uuid.uuid4().hex[:12])

        self.matches: dict[str, ActiveMatch] = {}
        self._completed_logs: OrderedDict[str, DuelLog] = OrderedDict()

    async def create_match(
        self,
        challenger_id: int,
        challenger_name: str,
        opponent_name: str,
        wager: int | float = 0,
        *,
        chat_id: int | None = None,
        listener: SnapshotListener | None = None,
    ) -> DuelResult:
        """Create and start a match.

        The opponent is bound to a live user if the directory knows the name,
        otherwise it is played by the opponent policy. Only the challenger
        stakes the wager.

        Args:
            challenger_id: User creating the duel (always the challenger's actor)
            challenger_name: Display name of the challenger's character
            opponent_name: Name typed for the opponent
            wager: Stake taken from the challenger
            chat_id: Chat used to scope opponent lookup
            listener: Optional receiver of state snapshots

        Returns:
            DuelResult with the match handle, or the rejection
        """
        challenger_name = challenger_name.strip()
        opponent_name = opponent_name.strip()
        if not challenger_name or not opponent_name:
            return DuelResult(success=False, message="Both duelists need a name.")

        try:
            wager = self.escrow.validate(wager)
        except InvalidWagerError as e:
            logger.info(f"Rejected duel from user {challenger_id}: {e}")
            return self._reject(DuelError.INVALID_WAGER)

        opponent = await self._resolve_opponent(challenger_id, opponent_name, chat_id)
        match = Match(
            match_id=self.id_factory(),
            challenger=Participant(display_name=challenger_name, actor_id=challenger_id),
            opponent=opponent,
            wager=wager,
            pot=wager,
            chat_id=chat_id,
        )

        try:
            await self.escrow.hold(challenger_id, wager)
        except InsufficientFundsError as e:
            logger.info(f"Rejected duel from user {challenger_id}: {e}")
            return self._reject(DuelError.INSUFFICIENT_FUNDS)

        machine = DuelStateMachine(match)
        machine.activate()

        runtime = ActiveMatch(match=match, machine=machine, logger=DuelLogger(match.match_id))
        if listener is not None:
            runtime.listeners.append(listener)
        self.matches[match.match_id] = runtime
        runtime.logger.log_match_created(match)

        runtime.timeout_call = self.scheduler.call_later(
            self.timeout_seconds, partial(self._on_timeout, match.match_id)
        )

        logger.info(
            f"Match {match.match_id} started: {match.challenger.display_name} vs "
            f"{match.opponent.display_name} (wager {wager})"
        )

        snapshot = match.snapshot()
        await self._emit(runtime, snapshot)

        return DuelResult(
            success=True,
            message="Duel started",
            handle=MatchHandle(match_id=match.match_id, snapshot=snapshot),
            snapshot=snapshot,
        )

    def subscribe(self, match_id: str, listener: SnapshotListener) -> bool:
        """Register a snapshot listener. Returns False for unknown matches."""
        runtime = self.matches.get(match_id)
        if runtime is None:
            return False
        runtime.listeners.append(listener)
        return True

    async def submit_action(self, match_id: str, actor_id: int, action: DuelAction | str) -> DuelResult:
        """Submit a live player's action.

        Rejections leave the match untouched.

        Args:
            match_id: Target match
            actor_id: User submitting the action
            action: Action or its button value

        Returns:
            DuelResult with the turn outcome and the new snapshot
        """
        parsed = DuelAction.parse(action)
        if parsed is None:
            return DuelResult(success=False, message=f"Unknown action: {action}")

        runtime = self.matches.get(match_id)
        if runtime is None:
            return self._reject(DuelError.UNKNOWN_MATCH)

        error = runtime.machine.check_actor(actor_id)
        if error is not None:
            return self._reject(error)

        return await self._play_turn(runtime, parsed)

    def get_snapshot(self, match_id: str) -> MatchSnapshot | None:
        """Current state of an active match."""
        runtime = self.matches.get(match_id)
        return runtime.match.snapshot() if runtime else None

    def get_log(self, match_id: str) -> DuelLog | None:
        """Log of an active or recently finished match."""
        runtime = self.matches.get(match_id)
        if runtime is not None:
            return runtime.logger.get_log()
        return self._completed_logs.get(match_id)

    def active_match_ids(self) -> list[str]:
        return list(self.matches)

    async def shutdown(self) -> int:
        """Cancel every pending timer and drop all matches without settling.

        Stakes held for dropped matches go back to their challengers.

        Returns:
            Number of matches dropped
        """
        runtimes = list(self.matches.values())
        self.matches.clear()

        for runtime in runtimes:
            self._cancel_timers(runtime)
            match = runtime.match
            if match.resolved:
                continue
            match.resolved = True
            try:
                refunded = await self.escrow.refund(match.challenger.actor_id, match.wager)
            except Exception:
                logger.exception(f"Could not refund {match.wager} for dropped match {match.match_id}")
                continue
            logger.warning(
                f"Dropped match {match.match_id} on shutdown"
                + (f", refunded {match.wager} to user {match.challenger.actor_id}" if refunded else "")
            )

        return len(runtimes)

    async def _resolve_opponent(self, challenger_id: int, name: str, chat_id: int | None) -> Participant:
        """Bind the opponent slot to a live user, or leave it to the policy."""
        actor = await self.directory.resolve(name, chat_id) if self.directory else None

        if actor is None or actor.actor_id == challenger_id:
            logger.info(f"{DuelError.OPPONENT_UNRESOLVABLE.value}: '{name}' is played by the opponent policy")
            return Participant(display_name=name)

        return Participant(display_name=actor.display_name, actor_id=actor.actor_id)

    async def _play_turn(self, runtime: ActiveMatch, action: DuelAction) -> DuelResult:
        """Resolve the turn owner's action and move the match along."""
        match = runtime.match

        outcome = self.turn_resolver.resolve(match, action)
        runtime.machine.record_turn(outcome)
        runtime.logger.log_turn(match, outcome)
        logger.debug(f"Match {match.match_id} turn {outcome.turn_number}: {outcome.log_line}")

        if match.terminal:
            settlement = await self._conclude(runtime)
            return DuelResult(
                success=True,
                message="Duel complete",
                turn=outcome,
                snapshot=match.snapshot(description=describe_outcome(match)),
                settlement=settlement,
            )

        if match.current.is_policy_controlled:
            runtime.policy_call = self.scheduler.call_later(
                self.policy_delay_seconds, partial(self._on_policy_move, match.match_id)
            )

        snapshot = match.snapshot()
        await self._emit(runtime, snapshot)

        return DuelResult(success=True, message="Turn resolved", turn=outcome, snapshot=snapshot)

    async def _on_policy_move(self, match_id: str) -> None:
        """Delayed opponent move. Dropped if the match moved on in the meantime."""
        runtime = self.matches.get(match_id)
        if runtime is None:
            return
        runtime.policy_call = None

        match = runtime.match
        if not match.is_active or not match.current.is_policy_controlled:
            runtime.logger.log_policy_move_skipped(match, f"match is {match.phase.value}")
            return

        await self._play_turn(runtime, self.opponent_controller.choose_action())

    async def _on_timeout(self, match_id: str) -> None:
        """The match deadline elapsed - decide on HP and settle."""
        runtime = self.matches.get(match_id)
        if runtime is None:
            return
        runtime.timeout_call = None

        match = runtime.match
        if match.terminal:
            return

        runtime.logger.log_timeout(match)
        outcome = runtime.machine.expire()
        logger.info(f"Match {match_id} timed out after {match.turn_number} turns: {outcome.value}")

        await self._conclude(runtime)

    async def _conclude(self, runtime: ActiveMatch) -> SettlementResult | None:
        """Settle a terminal match, publish the final state and unregister it."""
        match = runtime.match
        self._cancel_timers(runtime)
        runtime.logger.log_outcome(match)

        result = await self.settlement.settle(match)
        if result is None:
            return None

        if result.success:
            runtime.logger.log_settled(match, payout=result.payout, refund=result.refund)
        else:
            runtime.logger.log_settlement_failed(match, result.error_message or "unknown error")

        self.matches.pop(match.match_id, None)
        self._completed_logs[match.match_id] = runtime.logger.get_log()
        while len(self._completed_logs) > COMPLETED_LOG_LIMIT:
            self._completed_logs.popitem(last=False)

        logger.info(f"Match {match.match_id} concluded: {match.outcome.value if match.outcome else '?'}")

        await self._emit(runtime, match.snapshot(description=describe_outcome(match)))
        return result

    @staticmethod
    def _cancel_timers(runtime: ActiveMatch) -> None:
        if runtime.policy_call is not None:
            runtime.policy_call.cancel()
            runtime.policy_call = None
        if runtime.timeout_call is not None:
            runtime.timeout_call.cancel()
            runtime.timeout_call = None

    @staticmethod
    async def _emit(runtime: ActiveMatch, snapshot: MatchSnapshot) -> None:
        """Deliver a snapshot to every listener. Listener failures stay with the listener."""
        for listener in list(runtime.listeners):
            try:
                await listener(snapshot)
            except Exception:
                logger.exception(f"Snapshot listener failed for match {snapshot.match_id}")

    @staticmethod
    def _reject(error: DuelError) -> DuelResult:
        return DuelResult(success=False, message=REJECTION_MESSAGES[error], error=error)
