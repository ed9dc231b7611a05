"""Table rules."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class RuleSet:
    """
    Blackjack table rules configuration.

    Defaults describe the house game: two decks, S17, 3:2 naturals,
    insurance at 2:1, a five-unit minimum and no table maximum.
    """

    # Deck configuration
    num_decks: int = 2
    reshuffle_threshold: int = 20  # Rebuild the shoe below this many cards

    # Betting limits
    min_bet: int = 5

    # Blackjack payout (3:2 = 1.5)
    blackjack_payout: Decimal = Decimal("1.5")

    # Insurance pays 2:1 and costs half the first hand's stake
    insurance_payout: Decimal = Decimal("2")
    insurance_fraction: Decimal = Decimal("0.5")

    def __post_init__(self) -> None:
        """Validate rule combinations."""
        if self.num_decks < 1 or self.num_decks > 8:
            raise ValueError("num_decks must be between 1 and 8")
        if self.min_bet < 1:
            raise ValueError("min_bet must be at least 1")
        if self.reshuffle_threshold < 4:
            raise ValueError("reshuffle_threshold must leave room for a deal")
        if self.blackjack_payout < 1:
            raise ValueError("blackjack_payout must be at least 1.0")
