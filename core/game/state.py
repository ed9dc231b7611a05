"""Round phase, hand result and insurance enumerations."""

from enum import Enum


class Phase(Enum):
    """
    Round state machine states.

    Flow: BETTING → DEALING → PLAYER_TURN → DEALER_TURN → FINISHED
    """

    # Waiting for a stake
    BETTING = "betting"

    # Cards dealt; insurance decision pending when the dealer shows an Ace
    DEALING = "dealing"

    # Player acts on each hand in order
    PLAYER_TURN = "player-turn"

    # Dealer draws to 17
    DEALER_TURN = "dealer-turn"

    # Round settled, ready for the next
    FINISHED = "finished"

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()


class HandResult(Enum):
    """Outcome tag of one player hand."""

    PLAYING = "playing"
    WIN = "win"
    LOSS = "loss"
    PUSH = "push"
    BLACKJACK = "blackjack"
    BUST = "bust"


class InsuranceStatus(Enum):
    """Where the round stands on the insurance side bet."""

    NOT_OFFERED = "not-offered"
    OFFERED = "offered"
    TAKEN = "taken"
    DECLINED = "declined"


# Phase machine transitions, keyed by trigger name
TRANSITIONS: list[dict] = [
    {"trigger": "accept_bet", "source": Phase.BETTING, "dest": Phase.DEALING},
    {"trigger": "start_play", "source": Phase.DEALING, "dest": Phase.PLAYER_TURN},
    {"trigger": "settle_natural", "source": Phase.DEALING, "dest": Phase.FINISHED},  # Player blackjack
    {"trigger": "finish_hands", "source": Phase.PLAYER_TURN, "dest": Phase.DEALER_TURN},
    {"trigger": "settle_busted", "source": Phase.PLAYER_TURN, "dest": Phase.FINISHED},  # No hand survived
    {"trigger": "settle", "source": Phase.DEALER_TURN, "dest": Phase.FINISHED},
    {"trigger": "next_round", "source": Phase.FINISHED, "dest": Phase.BETTING},
]

# Valid phase transitions
VALID_TRANSITIONS: dict[Phase, list[Phase]] = {phase: [] for phase in Phase}
for _t in TRANSITIONS:
    VALID_TRANSITIONS[_t["source"]].append(_t["dest"])
del _t


def is_valid_transition(from_phase: Phase, to_phase: Phase) -> bool:
    """
    Check if a phase transition is valid.

    Args:
        from_phase: Current phase
        to_phase: Desired phase

    Returns:
        True if the transition is allowed
    """
    return to_phase in VALID_TRANSITIONS.get(from_phase, [])
