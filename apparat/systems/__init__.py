"""
Turn subsystems.

Each subsystem owns one phase of the turn and works on the orchestrator's
working copy through a TurnContext.
"""

from .base import EventOutbox, Subsystem, TurnContext, TurnSnapshot
from .drift import AmbientEventSystem, MetricDriftSystem
from .agents import AgentBehaviorSystem
from .political import PoliticalSystem
from .international import InternationalSystem
from .regional import RegionalSystem
from .career import CareerSystem
from .economy import EconomySystem
from .aggregation import AggregationSystem
from .turns import (
    PHASE_ORDER,
    InvalidPhaseError,
    TurnError,
    TurnOrchestrator,
    TurnPhase,
    TurnRejectedError,
)

__all__ = [
    "EventOutbox",
    "Subsystem",
    "TurnContext",
    "TurnSnapshot",
    "MetricDriftSystem",
    "AmbientEventSystem",
    "AgentBehaviorSystem",
    "PoliticalSystem",
    "InternationalSystem",
    "RegionalSystem",
    "CareerSystem",
    "EconomySystem",
    "AggregationSystem",
    # Turn engine
    "PHASE_ORDER",
    "TurnOrchestrator",
    "TurnPhase",
    "TurnError",
    "TurnRejectedError",
    "InvalidPhaseError",
]
