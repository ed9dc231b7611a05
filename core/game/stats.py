"""Boundary to the player-record store that tracks lifetime results."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from core.game.round import Round
from core.game.state import Phase

logger = logging.getLogger(__name__)


class StatsSinkError(Exception):
    """The player-record store could not be updated."""


class StatsSyncWarning(UserWarning):
    """A settled round was not recorded; the local bankroll stays authoritative."""


@dataclass(frozen=True)
class StatsUpdate:
    """Changes a settled round makes to the player record."""

    bankroll_after: Decimal
    hands_played_delta: int = 1
    hands_won_delta: int = 0
    hands_lost_delta: int = 0
    biggest_win_candidate: Decimal = Decimal("0")

    @classmethod
    def from_round(cls, rnd: Round) -> "StatsUpdate":
        """Build the update for a finished round."""
        if rnd.phase != Phase.FINISHED:
            raise ValueError(f"Round is not settled (phase {rnd.phase.value})")

        net = rnd.net_result
        return cls(
            bankroll_after=rnd.bankroll,
            hands_won_delta=1 if net > 0 else 0,
            hands_lost_delta=1 if net < 0 else 0,
            biggest_win_candidate=net,
        )


@dataclass
class PlayerRecord:
    """Persistent totals for one player."""

    bankroll: Decimal = Decimal("1000")
    total_hands_played: int = 0
    hands_won: int = 0
    hands_lost: int = 0
    biggest_win: Decimal = Decimal("0")

    def apply(self, update: StatsUpdate) -> None:
        """Fold a round's update into the totals."""
        self.bankroll = update.bankroll_after
        self.total_hands_played += update.hands_played_delta
        self.hands_won += update.hands_won_delta
        self.hands_lost += update.hands_lost_delta
        self.biggest_win = max(self.biggest_win, update.biggest_win_candidate)

    @property
    def win_rate(self) -> float:
        """Share of played rounds that ended with a net win."""
        if self.total_hands_played == 0:
            return 0.0
        return self.hands_won / self.total_hands_played


class StatsSink(ABC):
    """Receives one update per settled round."""

    @abstractmethod
    def record(self, update: StatsUpdate) -> None:
        """
        Persist an update.

        Raises:
            StatsSinkError: If the store rejected or could not take the update
        """
        ...


class InMemoryStatsSink(StatsSink):
    """Keeps the player record in process memory."""

    def __init__(self, record: PlayerRecord | None = None) -> None:
        self.record_data = record or PlayerRecord()
        self.updates: list[StatsUpdate] = []

    def record(self, update: StatsUpdate) -> None:
        """Apply the update to the held record."""
        self.record_data.apply(update)
        self.updates.append(update)
        logger.debug(
            "Recorded round: bankroll=%s net=%s",
            update.bankroll_after,
            update.biggest_win_candidate,
        )
