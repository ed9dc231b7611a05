"""Tests for round snapshots and stale-save detection."""

import json
import pytest
from decimal import Decimal

from core.game import Action, Phase, apply_action
from core.game.snapshot import (
    SNAPSHOT_VERSION,
    deserialize_round,
    dumps,
    is_stale,
    loads,
    restore_round,
    serialize_round,
)


@pytest.fixture
def rounds_by_phase(rigged_round, rules, rng):
    """One round in every phase, including insurance and split states."""
    betting = rigged_round("10S 7H AD 6C 2S 3S 4S")
    dealing = apply_action(betting, Action.PLACE_BET, 10, rules, rng)
    player_turn = apply_action(dealing, Action.TAKE_INSURANCE, rules=rules, rng=rng)
    dealer_turn = apply_action(player_turn, Action.STAND, rules=rules, rng=rng)
    finished = dealer_turn
    while finished.phase == Phase.DEALER_TURN:
        finished = apply_action(finished, Action.DEALER_STEP, rules=rules, rng=rng)

    split = apply_action(rigged_round("8C 8D 9D 7C 3H 2S"), Action.PLACE_BET, 10, rules, rng)
    split = apply_action(split, Action.SPLIT, rules=rules, rng=rng)

    return {
        Phase.BETTING: betting,
        Phase.DEALING: dealing,
        Phase.PLAYER_TURN: player_turn,
        Phase.DEALER_TURN: dealer_turn,
        Phase.FINISHED: finished,
        "split": split,
    }


class TestRoundTrip:
    """Tests for serialize/deserialize."""

    def test_every_phase_round_trips(self, rounds_by_phase):
        """Test a restored round equals the saved one in every phase."""
        for key, rnd in rounds_by_phase.items():
            assert deserialize_round(serialize_round(rnd)) == rnd, key

    def test_fixture_covers_every_phase(self, rounds_by_phase):
        """Test the fixture really reached each phase."""
        for phase in Phase:
            assert rounds_by_phase[phase].phase == phase

    def test_json_string_round_trip(self, rounds_by_phase):
        """Test the JSON helpers preserve the round."""
        rnd = rounds_by_phase[Phase.FINISHED]
        assert loads(dumps(rnd)) == rnd

    def test_money_stored_as_strings(self, rounds_by_phase):
        """Test Decimal amounts survive JSON without float rounding."""
        data = json.loads(dumps(rounds_by_phase[Phase.PLAYER_TURN]))
        assert data["bankroll"] == "985.0"
        assert data["insurance_bet"] == "5.0"
        assert data["version"] == SNAPSHOT_VERSION

    def test_wrong_version_rejected(self, rounds_by_phase):
        """Test a snapshot from another format version is refused."""
        data = serialize_round(rounds_by_phase[Phase.BETTING])
        data["version"] = SNAPSHOT_VERSION + 1
        with pytest.raises(ValueError):
            deserialize_round(data)


class TestStaleDetection:
    """Tests for comparing snapshots with the player record."""

    def test_mid_round_compares_opening_bankroll(self, rounds_by_phase):
        """Test a mid-round save matches the record from before the stake."""
        rnd = rounds_by_phase[Phase.PLAYER_TURN]
        assert not is_stale(rnd, Decimal("1000"))
        assert is_stale(rnd, Decimal("985"))

    def test_settled_round_compares_bankroll(self, rounds_by_phase):
        """Test a settled save matches the record after payouts."""
        rnd = rounds_by_phase[Phase.FINISHED]
        assert not is_stale(rnd, rnd.bankroll)
        assert is_stale(rnd, Decimal("1000"))


class TestRestoreRound:
    """Tests for resuming or discarding a saved round."""

    def test_restores_matching_save(self, rounds_by_phase):
        """Test a consistent save is resumed."""
        rnd = rounds_by_phase[Phase.DEALER_TURN]
        assert restore_round(serialize_round(rnd), Decimal("1000")) == rnd

    def test_discards_stale_save(self, rounds_by_phase, rng):
        """Test a save that disagrees with the record is replaced."""
        data = serialize_round(rounds_by_phase[Phase.PLAYER_TURN])
        rnd = restore_round(data, Decimal("750"), rng)
        assert rnd.phase == Phase.BETTING
        assert rnd.bankroll == Decimal("750")
        assert rnd.shoe.cards_remaining == 104

    def test_missing_save(self, rng):
        """Test no save gives a fresh round."""
        rnd = restore_round(None, Decimal("1000"), rng)
        assert rnd.phase == Phase.BETTING
        assert rnd.bankroll == Decimal("1000")

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"version": SNAPSHOT_VERSION},
            {"version": SNAPSHOT_VERSION, "phase": "napping"},
        ],
    )
    def test_unreadable_save(self, data, rng):
        """Test corrupt saves are discarded."""
        rnd = restore_round(data, Decimal("500"), rng)
        assert rnd.phase == Phase.BETTING
        assert rnd.bankroll == Decimal("500")

    def test_bad_money_value(self, rounds_by_phase, rng):
        """Test an unparseable amount is treated as corrupt."""
        data = serialize_round(rounds_by_phase[Phase.BETTING])
        data["bankroll"] = "lots"
        rnd = restore_round(data, Decimal("1000"), rng)
        assert rnd.slots == []
        assert rnd.shoe.cards_remaining == 104
