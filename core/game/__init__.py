"""Round state machine, payouts and persistence boundaries."""

from core.game.events import GameEvent, EventType
from core.game.state import Phase, HandResult, InsuranceStatus
from core.game.round import HandSlot, Round
from core.game.engine import Action, BlackjackGame, apply_action, dealer_steps, transition

__all__ = [
    "GameEvent",
    "EventType",
    "Phase",
    "HandResult",
    "InsuranceStatus",
    "HandSlot",
    "Round",
    "Action",
    "BlackjackGame",
    "apply_action",
    "dealer_steps",
    "transition",
]
