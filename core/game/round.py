"""The round aggregate: one play-through from stake to settlement."""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from random import Random

from core.cards import Card, Shoe, DECKS_PER_SHOE
from core.hand import Hand
from core.game.state import Phase, HandResult, InsuranceStatus


@dataclass
class HandSlot:
    """A player hand together with its stake and per-hand flags."""

    hand: Hand = field(default_factory=Hand)
    bet: Decimal = Decimal("0")
    can_double: bool = False
    can_split: bool = False
    result: HandResult = HandResult.PLAYING
    payout: Decimal = Decimal("0")
    is_split_hand: bool = False
    is_doubled: bool = False

    def copy(self) -> "HandSlot":
        """Return a slot whose hand can be mutated independently."""
        return replace(self, hand=self.hand.copy())

    @property
    def is_busted(self) -> bool:
        return self.result == HandResult.BUST


@dataclass
class Round:
    """
    Transient state of one round.

    ``bankroll`` is the spendable balance: stakes are taken out of it when
    placed and payouts added back at settlement. ``opening_bankroll`` is the
    balance before this round's first stake.
    """

    shoe: Shoe
    bankroll: Decimal
    opening_bankroll: Decimal
    phase: Phase = Phase.BETTING
    slots: list[HandSlot] = field(default_factory=list)
    dealer_hand: Hand = field(default_factory=Hand)
    active_index: int = 0
    insurance_status: InsuranceStatus = InsuranceStatus.NOT_OFFERED
    insurance_bet: Decimal | None = None
    insurance_payout: Decimal = Decimal("0")
    round_number: int = 1

    @classmethod
    def fresh(
        cls,
        bankroll: Decimal,
        shoe: Shoe | None = None,
        rng: Random | None = None,
        round_number: int = 1,
    ) -> "Round":
        """
        Create a Betting-phase round.

        Args:
            bankroll: Player's spendable balance
            shoe: Shoe carried over from the previous round (built if omitted)
            rng: Random number generator used to build a new shoe
            round_number: Sequence number of the round in the session
        """
        bankroll = Decimal(bankroll)
        return cls(
            shoe=shoe if shoe is not None else Shoe.build(DECKS_PER_SHOE, rng=rng),
            bankroll=bankroll,
            opening_bankroll=bankroll,
            round_number=round_number,
        )

    def copy(self) -> "Round":
        """Return a deep working copy; cards are shared since they are immutable."""
        return replace(
            self,
            shoe=self.shoe.copy(),
            slots=[slot.copy() for slot in self.slots],
            dealer_hand=self.dealer_hand.copy(),
        )

    @property
    def active_slot(self) -> HandSlot | None:
        """Get the hand currently receiving actions."""
        if 0 <= self.active_index < len(self.slots):
            return self.slots[self.active_index]
        return None

    @property
    def bets(self) -> list[Decimal]:
        return [slot.bet for slot in self.slots]

    @property
    def total_staked(self) -> Decimal:
        """Sum of the main-hand stakes, insurance excluded."""
        return sum(self.bets, Decimal("0"))

    @property
    def total_payout(self) -> Decimal:
        """Everything credited back at settlement, insurance included."""
        return sum((slot.payout for slot in self.slots), Decimal("0")) + self.insurance_payout

    @property
    def net_result(self) -> Decimal:
        """Main-hand payouts minus main-hand stakes; zero until settled."""
        if self.phase != Phase.FINISHED:
            return Decimal("0")
        return sum((slot.payout for slot in self.slots), Decimal("0")) - self.total_staked

    @property
    def dealer_up_card(self) -> Card | None:
        """The dealer's first dealt card, the one shown to the player."""
        return self.dealer_hand.cards[0] if self.dealer_hand.cards else None

    @property
    def insurance_pending(self) -> bool:
        return self.insurance_status == InsuranceStatus.OFFERED

    @property
    def is_finished(self) -> bool:
        return self.phase == Phase.FINISHED

    @property
    def committed_bankroll(self) -> Decimal:
        """
        The balance the player record should hold while this round exists.

        Mid-round the record has not yet seen the stakes, so it still holds
        the opening balance.
        """
        if self.phase in (Phase.BETTING, Phase.FINISHED):
            return self.bankroll
        return self.opening_bankroll
