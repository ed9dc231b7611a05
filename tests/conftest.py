"""Pytest fixtures for blackjack table tests."""

import pytest
from decimal import Decimal
from random import Random

from hypothesis import strategies as st

from core.cards import Card, Shoe, Rank, Suit
from core.hand import Hand
from core.rules import RuleSet
from core.game import BlackjackGame, Round

# Sits under the rigged cards so a deal never triggers a reshuffle
FILLER = [Card(Rank.TWO, Suit.CLUBS)] * 30


def make_hand(cards: str) -> Hand:
    """Build a hand from card notation, e.g. "AS 6H"."""
    return Hand(cards=[Card.from_string(c) for c in cards.split()])


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def rules():
    """Default ruleset."""
    return RuleSet()


@pytest.fixture
def shoe(rng):
    """A shuffled two-deck shoe."""
    return Shoe.build(rng=rng)


@pytest.fixture
def rigged_shoe():
    """Factory for a shoe that deals the given cards first, in order."""

    def _make(cards: str) -> Shoe:
        drawn = [Card.from_string(c) for c in cards.split()]
        return Shoe(cards=FILLER + list(reversed(drawn)))

    return _make


@pytest.fixture
def rigged_round(rigged_shoe):
    """Factory for a Betting round over a rigged shoe."""

    def _make(cards: str, bankroll: int | str = 1000) -> Round:
        return Round.fresh(Decimal(bankroll), shoe=rigged_shoe(cards))

    return _make


@pytest.fixture
def rigged_game(rigged_round, rng):
    """Factory for a game whose first round deals the given cards."""

    def _make(
        cards: str,
        bankroll: int | str = 1000,
        stats_sink=None,
        auto_dealer: bool = True,
    ) -> BlackjackGame:
        return BlackjackGame(
            initial_round=rigged_round(cards, bankroll),
            rng=rng,
            stats_sink=stats_sink,
            auto_dealer=auto_dealer,
        )

    return _make


@pytest.fixture
def game(rng):
    """A new game instance."""
    return BlackjackGame(initial_bankroll=Decimal("1000"), rng=rng)


@pytest.fixture
def blackjack_hand():
    """A natural blackjack hand."""
    return make_hand("AS KH")


@pytest.fixture
def soft_17_hand():
    """A soft 17 hand (A-6)."""
    return make_hand("AS 6H")


@pytest.fixture
def hard_16_hand():
    """A hard 16 hand (10-6)."""
    return make_hand("10S 6H")


@pytest.fixture
def pair_8s_hand():
    """A pair of 8s hand."""
    return make_hand("8C 8D")


@pytest.fixture
def bust_hand():
    """A busted hand."""
    return make_hand("10S 6H KC")


# Hypothesis strategies for property-based testing


@st.composite
def card_strategy(draw):
    """Generate a random card."""
    rank = draw(st.sampled_from(list(Rank)))
    suit = draw(st.sampled_from(list(Suit)))
    return Card(rank, suit)


@st.composite
def hand_strategy(draw, min_cards=1, max_cards=8):
    """Generate a random hand."""
    cards = draw(st.lists(card_strategy(), min_size=min_cards, max_size=max_cards))
    return Hand(cards=cards)
