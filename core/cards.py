"""Card and Shoe classes - immutable cards dealt from a two-deck shoe."""

from dataclasses import dataclass, field
from enum import Enum
from random import Random
from typing import Iterator

from core.errors import EmptyShoeError

DECKS_PER_SHOE = 2
RESHUFFLE_THRESHOLD = 20


class Suit(Enum):
    """Card suits."""

    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"

    def __str__(self) -> str:
        symbols = {
            Suit.HEARTS: "♥",
            Suit.DIAMONDS: "♦",
            Suit.CLUBS: "♣",
            Suit.SPADES: "♠",
        }
        return symbols[self]


class Rank(Enum):
    """Card ranks, valued by their printed label."""

    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"

    def __str__(self) -> str:
        return self.value

    @property
    def base_value(self) -> int:
        """Return the blackjack point value (Ace = 11, face cards = 10)."""
        if self == Rank.ACE:
            return 11
        if self in (Rank.JACK, Rank.QUEEN, Rank.KING):
            return 10
        return int(self.value)

    @property
    def is_ace(self) -> bool:
        """Check if this rank is an Ace."""
        return self == Rank.ACE


@dataclass(frozen=True, slots=True)
class Card:
    """Immutable playing card."""

    rank: Rank
    suit: Suit

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        return f"Card({self.rank.name}, {self.suit.name})"

    @property
    def value(self) -> int:
        """Return the base blackjack value."""
        return self.rank.base_value

    @property
    def is_ace(self) -> bool:
        """Check if this card is an Ace."""
        return self.rank.is_ace

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Create a card from a string like '2♣', 'AS', 'Kh', '10D'."""
        s = s.strip().upper()
        if len(s) < 2:
            raise ValueError(f"Invalid card string: {s}")

        rank_str = s[:-1]
        suit_str = s[-1]

        if rank_str == "T":
            rank_str = "10"

        suit_map = {
            "H": Suit.HEARTS,
            "♥": Suit.HEARTS,
            "D": Suit.DIAMONDS,
            "♦": Suit.DIAMONDS,
            "C": Suit.CLUBS,
            "♣": Suit.CLUBS,
            "S": Suit.SPADES,
            "♠": Suit.SPADES,
        }

        try:
            rank = Rank(rank_str)
        except ValueError:
            raise ValueError(f"Invalid rank: {rank_str}") from None
        if suit_str not in suit_map:
            raise ValueError(f"Invalid suit: {suit_str}")

        return cls(rank, suit_map[suit_str])


def standard_deck() -> list[Card]:
    """Return the 52 cards of one deck in suit/rank order."""
    return [Card(rank, suit) for suit in Suit for rank in Rank]


@dataclass
class Shoe:
    """
    A stack of cards built from two standard decks.

    The end of ``cards`` is the top of the stack.
    """

    cards: list[Card] = field(default_factory=list)

    @classmethod
    def build(cls, num_decks: int = DECKS_PER_SHOE, rng: Random | None = None) -> "Shoe":
        """
        Build and shuffle a fresh shoe.

        Args:
            num_decks: Number of 52-card decks concatenated into the shoe
            rng: Random number generator for shuffling
        """
        if num_decks < 1:
            raise ValueError("Shoe must have at least 1 deck")

        cards = [card for _ in range(num_decks) for card in standard_deck()]
        (rng or Random()).shuffle(cards)
        return cls(cards=cards)

    def draw(self) -> Card:
        """Draw a card from the top of the shoe."""
        if not self.cards:
            raise EmptyShoeError()
        return self.cards.pop()

    def needs_reshuffle(self, threshold: int = RESHUFFLE_THRESHOLD) -> bool:
        """Check if fewer than ``threshold`` cards remain."""
        return len(self.cards) < threshold

    def copy(self) -> "Shoe":
        """Return a shoe with the same card order that can be drawn independently."""
        return Shoe(cards=list(self.cards))

    @property
    def cards_remaining(self) -> int:
        """Return the number of cards remaining."""
        return len(self.cards)

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)


def build_shoe(rng: Random | None = None) -> Shoe:
    """Build a shuffled 104-card shoe."""
    return Shoe.build(DECKS_PER_SHOE, rng=rng)
