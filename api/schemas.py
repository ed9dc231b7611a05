"""Pydantic schemas for API requests and responses."""

from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal


class BetRequest(BaseModel):
    """Request to place a bet."""

    amount: Decimal = Field(..., description="Bet amount in whole units")


class ActionRequest(BaseModel):
    """Request for player action."""

    action: Literal["hit", "stand", "double", "split", "insurance", "decline_insurance"]


class CardResponse(BaseModel):
    """Card representation."""

    model_config = ConfigDict(from_attributes=True)

    rank: str
    suit: str
    value: int


class HandResponse(BaseModel):
    """Player hand representation."""

    cards: list[CardResponse]
    value: int
    is_soft: bool
    is_blackjack: bool
    is_busted: bool
    bet: float
    result: Literal["playing", "win", "loss", "push", "blackjack", "bust"]
    payout: float
    is_doubled: bool
    is_split_hand: bool


class DealerHandResponse(BaseModel):
    """Dealer hand; only the up-card is shown until the dealer's turn."""

    cards: list[CardResponse]
    value: int | None
    hole_card_hidden: bool


class GameStateResponse(BaseModel):
    """Current game state."""

    state: Literal["betting", "dealing", "player-turn", "dealer-turn", "finished"]
    round_number: int
    player_hands: list[HandResponse]
    current_hand_index: int
    dealer_hand: DealerHandResponse
    dealer_showing: CardResponse | None
    bankroll: float
    cards_remaining: int
    insurance_offered: bool
    insurance_bet: float | None
    can_hit: bool
    can_stand: bool
    can_double: bool
    can_split: bool
    can_insure: bool
    net_result: float
    warnings: list[str] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    """Typed rejection returned with HTTP 400."""

    code: Literal["invalid_bet", "illegal_action", "insufficient_funds", "empty_shoe"]
    message: str


class PlayerRecordResponse(BaseModel):
    """Lifetime totals of the session's player."""

    bankroll: float
    total_hands_played: int
    hands_won: int
    hands_lost: int
    biggest_win: float
    win_rate: float
