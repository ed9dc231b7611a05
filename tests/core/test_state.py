"""Tests for the phase table and the event emitter."""

import pytest

from core.game.events import EventEmitter, EventType, GameEvent
from core.game.state import TRANSITIONS, VALID_TRANSITIONS, Phase, is_valid_transition


class TestPhaseTransitions:
    """Tests for the phase transition table."""

    @pytest.mark.parametrize(
        "source,dest",
        [
            (Phase.BETTING, Phase.DEALING),
            (Phase.DEALING, Phase.PLAYER_TURN),
            (Phase.DEALING, Phase.FINISHED),
            (Phase.PLAYER_TURN, Phase.DEALER_TURN),
            (Phase.PLAYER_TURN, Phase.FINISHED),
            (Phase.DEALER_TURN, Phase.FINISHED),
            (Phase.FINISHED, Phase.BETTING),
        ],
    )
    def test_allowed(self, source, dest):
        """Test the forward flow and its two skips are allowed."""
        assert is_valid_transition(source, dest)

    @pytest.mark.parametrize(
        "source,dest",
        [
            (Phase.BETTING, Phase.PLAYER_TURN),
            (Phase.DEALER_TURN, Phase.PLAYER_TURN),
            (Phase.FINISHED, Phase.DEALING),
            (Phase.BETTING, Phase.BETTING),
        ],
    )
    def test_rejected(self, source, dest):
        """Test skipping or going backwards is not allowed."""
        assert not is_valid_transition(source, dest)

    def test_every_trigger_is_unique(self):
        """Test each trigger names one edge."""
        triggers = [t["trigger"] for t in TRANSITIONS]
        assert len(triggers) == len(set(triggers))
        assert sum(len(dests) for dests in VALID_TRANSITIONS.values()) == len(TRANSITIONS)

    def test_phase_str(self):
        """Test phases print as titles."""
        assert str(Phase.PLAYER_TURN) == "Player Turn"


class TestEventEmitter:
    """Tests for EventEmitter."""

    def test_typed_and_catch_all_handlers(self):
        """Test typed handlers only see their type; catch-all sees everything."""
        emitter = EventEmitter()
        typed, everything = [], []
        emitter.subscribe(typed.append, EventType.PLAYER_HIT)
        emitter.subscribe(everything.append)

        emitter.emit_new(EventType.PLAYER_HIT, hand_index=0)
        emitter.emit_new(EventType.PLAYER_STAND, hand_index=0)

        assert [e.event_type for e in typed] == [EventType.PLAYER_HIT]
        assert len(everything) == 2

    def test_unsubscribe(self):
        """Test a removed handler is no longer called."""
        emitter = EventEmitter()
        seen = []
        emitter.subscribe(seen.append)
        emitter.unsubscribe(seen.append)
        emitter.unsubscribe(print)

        emitter.emit_new(EventType.ROUND_STARTED)

        assert seen == []

    def test_history(self):
        """Test events are kept until cleared."""
        emitter = EventEmitter()
        event = emitter.emit_new(EventType.BET_PLACED, amount=10)

        assert emitter.history == [event]
        emitter.clear_history()
        assert emitter.history == []

    def test_event_is_frozen(self):
        """Test events cannot be altered after emission."""
        event = GameEvent(EventType.ROUND_ENDED, {"result": 0})
        with pytest.raises(AttributeError):
            event.event_type = EventType.ROUND_STARTED
        assert "ROUND_ENDED" in str(event)
