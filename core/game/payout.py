"""Payout calculation for settled hands and the insurance side bet."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import NamedTuple

from core.hand import Hand, hand_value, is_blackjack, is_bust
from core.game.round import HandSlot
from core.game.state import HandResult

BLACKJACK_PAYOUT = Decimal("1.5")
INSURANCE_PAYOUT = Decimal("2")


class Settlement(NamedTuple):
    """Result tag and total amount returned to the player for one hand."""

    result: HandResult
    payout: Decimal


def settle(
    bet: Decimal | int,
    player_value: int,
    dealer_value: int,
    player_blackjack: bool,
    player_bust: bool,
    dealer_bust: bool,
    dealer_blackjack: bool | None = None,
    blackjack_payout: Decimal = BLACKJACK_PAYOUT,
) -> Settlement:
    """
    Resolve one hand against the dealer.

    Payouts include the returned stake: a win pays ``bet * 2``, a natural
    ``bet * 2.5`` at 3:2, a push returns ``bet``, a loss returns nothing.

    Args:
        bet: Stake on the hand
        player_value: Player hand total
        dealer_value: Dealer hand total
        player_blackjack: Player holds a natural
        player_bust: Player total is over 21
        dealer_bust: Dealer total is over 21
        dealer_blackjack: Dealer holds a two-card 21; when omitted any dealer
            21 is taken to be a natural
        blackjack_payout: Winnings per unit staked on a natural

    Returns:
        Settlement for the hand
    """
    bet = Decimal(bet)
    if dealer_blackjack is None:
        dealer_blackjack = dealer_value == 21

    if player_bust:
        return Settlement(HandResult.LOSS, Decimal("0"))

    if player_blackjack:
        if dealer_blackjack:
            return Settlement(HandResult.PUSH, bet)
        return Settlement(HandResult.BLACKJACK, bet + bet * blackjack_payout)

    if dealer_bust:
        return Settlement(HandResult.WIN, bet * 2)

    if player_value > dealer_value:
        return Settlement(HandResult.WIN, bet * 2)
    if player_value < dealer_value:
        return Settlement(HandResult.LOSS, Decimal("0"))
    return Settlement(HandResult.PUSH, bet)


def insurance_payout(
    insurance_bet: Decimal | None,
    dealer_has_blackjack: bool,
    payout: Decimal = INSURANCE_PAYOUT,
) -> Decimal:
    """Return stake plus 2:1 if the dealer has blackjack, else nothing."""
    if not insurance_bet or not dealer_has_blackjack:
        return Decimal("0")
    return insurance_bet + insurance_bet * payout


@dataclass(frozen=True)
class RoundSettlement:
    """Settlement of every hand in a round."""

    results: list[HandResult] = field(default_factory=list)
    payouts: list[Decimal] = field(default_factory=list)
    insurance_payout: Decimal = Decimal("0")
    total_staked: Decimal = Decimal("0")

    @property
    def main_payout(self) -> Decimal:
        return sum(self.payouts, Decimal("0"))

    @property
    def total_payout(self) -> Decimal:
        """Everything credited back to the bankroll."""
        return self.main_payout + self.insurance_payout

    @property
    def net(self) -> Decimal:
        """Main-hand payout minus main-hand stakes; insurance is excluded."""
        return self.main_payout - self.total_staked


def settle_round(
    slots: list[HandSlot],
    dealer_hand: Hand,
    insurance_bet: Decimal | None = None,
    blackjack_payout: Decimal = BLACKJACK_PAYOUT,
    insurance_rate: Decimal = INSURANCE_PAYOUT,
) -> RoundSettlement:
    """
    Settle every player hand against the dealer.

    Busted hands keep their BUST tag and pay nothing. Any two-card 21 is a
    natural, including one made on a split hand.
    """
    dealer_value = hand_value(dealer_hand).total
    dealer_bust = is_bust(dealer_hand)
    dealer_blackjack = is_blackjack(dealer_hand)

    results: list[HandResult] = []
    payouts: list[Decimal] = []
    for slot in slots:
        if slot.result == HandResult.BUST:
            results.append(HandResult.BUST)
            payouts.append(Decimal("0"))
            continue

        outcome = settle(
            slot.bet,
            hand_value(slot.hand).total,
            dealer_value,
            is_blackjack(slot.hand),
            is_bust(slot.hand),
            dealer_bust,
            dealer_blackjack=dealer_blackjack,
            blackjack_payout=blackjack_payout,
        )
        results.append(outcome.result)
        payouts.append(outcome.payout)

    return RoundSettlement(
        results=results,
        payouts=payouts,
        insurance_payout=insurance_payout(insurance_bet, dealer_blackjack, insurance_rate),
        total_staked=sum((slot.bet for slot in slots), Decimal("0")),
    )
