"""Round snapshots for session storage."""

import json
import logging
from decimal import Decimal, InvalidOperation
from random import Random
from typing import Any

from core.cards import Card, Rank, Shoe, Suit
from core.hand import Hand
from core.game.round import HandSlot, Round
from core.game.state import HandResult, InsuranceStatus, Phase

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def serialize_card(card: Card) -> dict[str, str]:
    """Serialize a card to a dict."""
    return {"rank": card.rank.value, "suit": card.suit.value}


def deserialize_card(data: dict[str, str]) -> Card:
    """Deserialize a card from a dict."""
    return Card(Rank(data["rank"]), Suit(data["suit"]))


def _serialize_hand(hand: Hand) -> list[dict[str, str]]:
    return [serialize_card(c) for c in hand.cards]


def _deserialize_hand(data: list[dict[str, str]]) -> Hand:
    return Hand(cards=[deserialize_card(c) for c in data])


def _serialize_slot(slot: HandSlot) -> dict[str, Any]:
    return {
        "cards": _serialize_hand(slot.hand),
        "bet": str(slot.bet),
        "can_double": slot.can_double,
        "can_split": slot.can_split,
        "result": slot.result.value,
        "payout": str(slot.payout),
        "is_split_hand": slot.is_split_hand,
        "is_doubled": slot.is_doubled,
    }


def _deserialize_slot(data: dict[str, Any]) -> HandSlot:
    return HandSlot(
        hand=_deserialize_hand(data["cards"]),
        bet=Decimal(data["bet"]),
        can_double=data["can_double"],
        can_split=data["can_split"],
        result=HandResult(data["result"]),
        payout=Decimal(data["payout"]),
        is_split_hand=data["is_split_hand"],
        is_doubled=data["is_doubled"],
    )


def serialize_round(rnd: Round) -> dict[str, Any]:
    """Serialize a round to JSON-safe data; money is kept as strings."""
    return {
        "version": SNAPSHOT_VERSION,
        "phase": rnd.phase.value,
        "bankroll": str(rnd.bankroll),
        "opening_bankroll": str(rnd.opening_bankroll),
        "shoe": [serialize_card(c) for c in rnd.shoe.cards],
        "slots": [_serialize_slot(s) for s in rnd.slots],
        "dealer_hand": _serialize_hand(rnd.dealer_hand),
        "active_index": rnd.active_index,
        "insurance_status": rnd.insurance_status.value,
        "insurance_bet": None if rnd.insurance_bet is None else str(rnd.insurance_bet),
        "insurance_payout": str(rnd.insurance_payout),
        "round_number": rnd.round_number,
    }


def deserialize_round(data: dict[str, Any]) -> Round:
    """
    Restore a round from serialized data.

    Raises:
        ValueError: If the data is not a snapshot this version can read
    """
    version = data.get("version")
    if version != SNAPSHOT_VERSION:
        raise ValueError(f"Unsupported snapshot version: {version!r}")

    insurance_bet = data["insurance_bet"]
    return Round(
        shoe=Shoe(cards=[deserialize_card(c) for c in data["shoe"]]),
        bankroll=Decimal(data["bankroll"]),
        opening_bankroll=Decimal(data["opening_bankroll"]),
        phase=Phase(data["phase"]),
        slots=[_deserialize_slot(s) for s in data["slots"]],
        dealer_hand=_deserialize_hand(data["dealer_hand"]),
        active_index=data["active_index"],
        insurance_status=InsuranceStatus(data["insurance_status"]),
        insurance_bet=None if insurance_bet is None else Decimal(insurance_bet),
        insurance_payout=Decimal(data["insurance_payout"]),
        round_number=data["round_number"],
    )


def dumps(rnd: Round) -> str:
    """Serialize a round to a JSON string."""
    return json.dumps(serialize_round(rnd))


def loads(raw: str) -> Round:
    """Restore a round from a JSON string."""
    return deserialize_round(json.loads(raw))


def is_stale(rnd: Round, record_bankroll: Decimal) -> bool:
    """Check if the snapshot disagrees with the authoritative player record."""
    return rnd.committed_bankroll != Decimal(record_bankroll)


def restore_round(
    data: dict[str, Any] | None,
    record_bankroll: Decimal,
    rng: Random | None = None,
) -> Round:
    """
    Resume a saved round, or start over when the save cannot be trusted.

    Args:
        data: Serialized round, if one was saved
        record_bankroll: Bankroll held by the player record
        rng: Random number generator for a replacement shoe

    Returns:
        The saved round, or a fresh Betting round at ``record_bankroll`` when
        the save is missing, unreadable or stale
    """
    record_bankroll = Decimal(record_bankroll)
    if data is None:
        return Round.fresh(record_bankroll, rng=rng)

    try:
        rnd = deserialize_round(data)
    except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
        logger.warning("Discarding unreadable round snapshot: %s", exc)
        return Round.fresh(record_bankroll, rng=rng)

    if is_stale(rnd, record_bankroll):
        logger.info(
            "Discarding stale round snapshot: bankroll %s, record %s",
            rnd.committed_bankroll,
            record_bankroll,
        )
        return Round.fresh(record_bankroll, rng=rng)

    return rnd
