"""Dealer drawing policy."""

from core.hand import Hand, hand_value

DEALER_STANDS_ON = 17


def dealer_should_hit(hand: Hand) -> bool:
    """
    Determine if the dealer should draw.

    The dealer draws below 17 and stands on every 17, soft or hard (S17).
    """
    return hand_value(hand).total < DEALER_STANDS_ON
