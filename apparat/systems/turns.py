"""
Turn orchestrator.

Owns the phase state machine and runs the fixed turn pipeline:

    IDLE → METRIC_DRIFT → NPC_ACTIONS → AMBIENT → POLITICAL → INTERNATIONAL
         → REGIONAL → CAREER → ECONOMY → AGGREGATION → COMPLETE → IDLE

The orchestrator sequences and delegates; each phase is a pluggable
subsystem. A turn is all-or-nothing: phases run against a deep copy of
the caller's world, and the copy is only handed back if every phase
finished and the end-of-turn invariant checks pass.

Usage:
    orchestrator = TurnOrchestrator(config)
    result = orchestrator.advance(world, seed=42)
    world = result.world
"""

from __future__ import annotations

import logging
import random
from enum import Enum

from ..config import BalanceConfig
from ..state.event_bus import EventBus, LifecycleEvent
from ..state.invariants import InvariantViolation, check_world
from ..state.metrics import MetricLedger
from ..state.schemas.turn_result import TurnResult
from ..state.world import World
from .agents import AgentBehaviorSystem
from .aggregation import AggregationSystem
from .base import EventOutbox, Subsystem, TurnContext, TurnSnapshot
from .career import CareerSystem
from .drift import AmbientEventSystem, MetricDriftSystem
from .economy import EconomySystem
from .international import InternationalSystem
from .political import PoliticalSystem
from .regional import RegionalSystem

logger = logging.getLogger(__name__)


class TurnPhase(str, Enum):
    """Phase state machine for a single turn."""
    IDLE = "idle"
    METRIC_DRIFT = "metric_drift"
    NPC_ACTIONS = "npc_actions"
    AMBIENT = "ambient"
    POLITICAL = "political"
    INTERNATIONAL = "international"
    REGIONAL = "regional"
    CAREER = "career"
    ECONOMY = "economy"
    AGGREGATION = "aggregation"
    COMPLETE = "complete"


# The fixed processing order
PHASE_ORDER: tuple[TurnPhase, ...] = (
    TurnPhase.METRIC_DRIFT,
    TurnPhase.NPC_ACTIONS,
    TurnPhase.AMBIENT,
    TurnPhase.POLITICAL,
    TurnPhase.INTERNATIONAL,
    TurnPhase.REGIONAL,
    TurnPhase.CAREER,
    TurnPhase.ECONOMY,
    TurnPhase.AGGREGATION,
)

# Valid phase transitions: the pipeline in order, then back to idle
VALID_TRANSITIONS: dict[TurnPhase, set[TurnPhase]] = {
    TurnPhase.IDLE: {PHASE_ORDER[0]},
    **{phase: {nxt} for phase, nxt in zip(PHASE_ORDER, PHASE_ORDER[1:])},
    PHASE_ORDER[-1]: {TurnPhase.COMPLETE},
    TurnPhase.COMPLETE: {TurnPhase.IDLE},
}


class TurnError(Exception):
    """Error during turn processing."""
    pass


class TurnRejectedError(TurnError):
    """The turn broke a world invariant and was thrown away."""
    def __init__(self, turn: int, violation: InvariantViolation):
        self.turn = turn
        self.problems = violation.problems
        super().__init__(f"Turn {turn} rejected: {violation}")


class InvalidPhaseError(TurnError):
    """Attempted operation not valid in current phase."""
    def __init__(self, current: TurnPhase, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(f"Cannot {attempted} during {current.value} phase.")


def default_systems() -> dict[TurnPhase, Subsystem]:
    """One instance of each built-in subsystem, keyed by the phase it runs in."""
    return {
        TurnPhase.METRIC_DRIFT: MetricDriftSystem(),
        TurnPhase.NPC_ACTIONS: AgentBehaviorSystem(),
        TurnPhase.AMBIENT: AmbientEventSystem(),
        TurnPhase.POLITICAL: PoliticalSystem(),
        TurnPhase.INTERNATIONAL: InternationalSystem(),
        TurnPhase.REGIONAL: RegionalSystem(),
        TurnPhase.CAREER: CareerSystem(),
        TurnPhase.ECONOMY: EconomySystem(),
        TurnPhase.AGGREGATION: AggregationSystem(),
    }


def derive_seed(world: World) -> int:
    """Seed for a turn when the caller gives none: fixed per world and turn."""
    return (world.seed * 1_000_003 + world.turn) % (2**31)


class TurnOrchestrator:
    """
    Sequences the turn pipeline. Delegates, never resolves.

    Responsibilities:
    - Phase state machine enforcement
    - Working copy and rollback
    - Turn-start snapshot, seeded randomness, ledger and outbox
    - End-of-turn invariant checks
    - Lifecycle notifications on the injected bus

    NOT responsible for:
    - What any phase does (subsystems)
    - Presentation order of events (aggregation)
    - Persistence (the caller saves result.world)
    """

    def __init__(
        self,
        config: BalanceConfig | None = None,
        systems: dict[TurnPhase, Subsystem] | None = None,
        bus: EventBus | None = None,
    ):
        self._config = config or BalanceConfig()
        self._systems = {**default_systems(), **(systems or {})}
        self._bus = bus
        self._phase = TurnPhase.IDLE

    @property
    def phase(self) -> TurnPhase:
        """Current phase of the turn state machine."""
        return self._phase

    @property
    def config(self) -> BalanceConfig:
        return self._config

    def _transition(self, to: TurnPhase) -> None:
        if to not in VALID_TRANSITIONS.get(self._phase, set()):
            raise InvalidPhaseError(self._phase, f"enter {to.value}")
        self._phase = to

    def _notify(self, event_type: LifecycleEvent, world: World, **data) -> None:
        if self._bus is not None:
            self._bus.emit(event_type, world_id=world.meta.id, turn=world.turn, **data)

    # ─── Turn Pipeline ───────────────────────────────────────

    def advance(self, world: World, seed: int | None = None) -> TurnResult:
        """
        Advance the world by exactly one turn.

        Args:
            world: Current state; never modified
            seed: Randomness seed; derived from the world when omitted

        Returns:
            TurnResult with the new world and the turn's events

        Raises:
            TurnRejectedError: an invariant failed; the input world stands
            InvalidPhaseError: a turn is already in progress
        """
        if self._phase != TurnPhase.IDLE:
            raise InvalidPhaseError(self._phase, "advance")

        turn = world.turn
        seed = derive_seed(world) if seed is None else seed
        working = world.model_copy(deep=True)
        ctx = TurnContext(
            world=working,
            snapshot=TurnSnapshot.capture(working),
            rng=random.Random(seed),
            ledger=MetricLedger(working.metrics),
            outbox=EventOutbox(turn),
            config=self._config,
        )

        logger.info(f"Turn {turn} started (seed {seed})")
        self._notify(LifecycleEvent.TURN_STARTED, world, seed=seed)

        try:
            for phase in PHASE_ORDER:
                self._transition(phase)
                self._systems[phase].run(ctx)
                logger.debug(f"Turn {turn}: {phase.value} done ({len(ctx.outbox)} events)")
                self._notify(LifecycleEvent.PHASE_COMPLETED, world, phase=phase.value)
            check_world(working)
        except InvariantViolation as e:
            self._phase = TurnPhase.IDLE
            logger.error(f"Turn {turn} rejected: {e.problems}")
            self._notify(LifecycleEvent.TURN_REJECTED, world, problems=e.problems)
            raise TurnRejectedError(turn, e) from e
        except Exception:
            self._phase = TurnPhase.IDLE
            raise

        self._transition(TurnPhase.COMPLETE)
        working.turn = turn + 1
        working.decisions_this_turn = []

        result = TurnResult(
            world=working,
            turn_number=turn,
            seed=seed,
            events=ctx.outbox.events,
            notices=ctx.notices,
            metric_changes=ctx.ledger.net_changes(),
        )
        logger.info(f"Turn {turn} complete: {len(result.events)} events")
        self._notify(LifecycleEvent.TURN_COMPLETED, world, events=len(result.events))
        self._transition(TurnPhase.IDLE)
        return result
