"""Core blackjack engine - 100% UI-agnostic."""

from core.cards import Card, Shoe, Rank, Suit, build_shoe
from core.errors import (
    EngineError,
    EmptyShoeError,
    IllegalActionError,
    InsufficientFundsError,
    InvalidBetError,
)
from core.hand import Hand
from core.rules import RuleSet

__all__ = [
    "Card",
    "Shoe",
    "Rank",
    "Suit",
    "build_shoe",
    "Hand",
    "RuleSet",
    "EngineError",
    "EmptyShoeError",
    "IllegalActionError",
    "InsufficientFundsError",
    "InvalidBetError",
]
