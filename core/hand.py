"""Hand evaluation for blackjack."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterator, NamedTuple

from core.cards import Card


class HandValue(NamedTuple):
    """Best total of a hand and whether an ace still counts as 11."""

    total: int
    is_soft: bool


@dataclass
class Hand:
    """An ordered run of cards held by the dealer or one player seat."""

    cards: list[Card] = field(default_factory=list)

    def add_card(self, card: Card) -> None:
        """Add a card to the hand."""
        self.cards.append(card)

    def copy(self) -> "Hand":
        """Return a hand holding the same cards."""
        return Hand(cards=list(self.cards))

    @property
    def value(self) -> int:
        """Return the best hand total."""
        return hand_value(self).total

    @property
    def is_soft(self) -> bool:
        """Check if an ace is still counted as 11."""
        return hand_value(self).is_soft

    @property
    def is_blackjack(self) -> bool:
        """Check if the hand is a natural blackjack (21 with 2 cards)."""
        return is_blackjack(self)

    @property
    def is_busted(self) -> bool:
        """Check if the hand has busted (value > 21)."""
        return is_bust(self)

    @property
    def is_pair(self) -> bool:
        """Check if the hand is a pair (two cards of same rank)."""
        return is_pair(self)

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __str__(self) -> str:
        cards_str = " ".join(str(card) for card in self.cards)
        value_str = f"({self.value})"
        if self.is_soft:
            value_str = f"(soft {self.value})"
        if self.is_blackjack:
            value_str = "(BLACKJACK)"
        if self.is_busted:
            value_str = "(BUST)"
        return f"{cards_str} {value_str}"

    def __repr__(self) -> str:
        return f"Hand({self.cards!r}, value={self.value})"


def hand_value(hand: Hand) -> HandValue:
    """
    Calculate the best hand value.

    Every ace starts at 11 and is reduced to 1, one at a time, while the
    total is over 21.
    """
    total = 0
    aces = 0

    for card in hand.cards:
        if card.is_ace:
            aces += 1
        total += card.value

    while total > 21 and aces > 0:
        total -= 10
        aces -= 1

    return HandValue(total, aces > 0 and total <= 21)


def is_blackjack(hand: Hand) -> bool:
    """Two cards totalling 21."""
    return len(hand.cards) == 2 and hand_value(hand).total == 21


def is_bust(hand: Hand) -> bool:
    return hand_value(hand).total > 21


def is_pair(hand: Hand) -> bool:
    return len(hand.cards) == 2 and hand.cards[0].rank == hand.cards[1].rank


def can_double(hand: Hand) -> bool:
    """Doubling is allowed on any two-card hand."""
    return len(hand.cards) == 2


def can_split(hand: Hand, bankroll: Decimal, current_bet: Decimal | int) -> bool:
    """
    Check if the hand can be split.

    Args:
        hand: The hand to split
        bankroll: Spendable balance after the current stakes
        current_bet: Stake on the hand, matched by the new hand
    """
    return is_pair(hand) and bankroll >= current_bet
