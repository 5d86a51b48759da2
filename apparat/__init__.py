"""
Apparat: a turn-based political career simulation engine.

    from apparat import create_world, advance_turn, evaluate_promotion

    world = create_world(seed=7)
    result = advance_turn(world)
    print(evaluate_promotion(result.world).reason)
"""

from .config import BalanceConfig, load_config
from .engine import (
    advance_turn,
    apply_decision,
    choose_track,
    create_world,
    enqueue_content,
    evaluate_promotion,
    remove_npc,
    resolve_access,
    resolve_offer,
    transfer_track,
)
from .state.schemas.action import (
    ChangeResult,
    Decision,
    DecisionResult,
    OfferResolution,
    PromotionCheck,
    Refusal,
    RefusalReason,
)
from .state.schemas.turn_result import Notice, TurnResult
from .systems.turns import TurnRejectedError

__version__ = "0.1.0"

__all__ = [
    "BalanceConfig",
    "load_config",
    "advance_turn",
    "apply_decision",
    "choose_track",
    "create_world",
    "enqueue_content",
    "evaluate_promotion",
    "remove_npc",
    "resolve_access",
    "resolve_offer",
    "transfer_track",
    "ChangeResult",
    "Decision",
    "DecisionResult",
    "OfferResolution",
    "PromotionCheck",
    "Refusal",
    "RefusalReason",
    "Notice",
    "TurnResult",
    "TurnRejectedError",
]
