"""Blackjack round state machine and driver facade."""

import logging
import warnings
from decimal import Decimal, InvalidOperation
from enum import Enum
from random import Random
from typing import Any, Callable, Iterator

from transitions import Machine

from core.cards import Card, Shoe
from core.errors import (
    EngineError,
    IllegalActionError,
    InsufficientFundsError,
    InvalidBetError,
)
from core.hand import Hand, can_double, can_split, is_blackjack, is_bust, is_pair
from core.rules import RuleSet
from core.game.dealer import dealer_should_hit
from core.game.events import EventEmitter, EventType, GameEvent
from core.game.payout import settle_round
from core.game.round import HandSlot, Round
from core.game.state import TRANSITIONS, HandResult, InsuranceStatus, Phase
from core.game.stats import StatsSink, StatsSinkError, StatsSyncWarning, StatsUpdate

logger = logging.getLogger(__name__)


class Action(Enum):
    """Commands a driver can issue against a round."""

    PLACE_BET = "bet"
    HIT = "hit"
    STAND = "stand"
    DOUBLE = "double"
    SPLIT = "split"
    TAKE_INSURANCE = "insurance"
    DECLINE_INSURANCE = "decline_insurance"
    DEALER_STEP = "dealer_step"
    NEW_ROUND = "new_round"


def _parse_bet(amount: Any) -> Decimal:
    """Convert a stake to a whole-unit Decimal or reject it."""
    if amount is None or isinstance(amount, bool):
        raise InvalidBetError(f"Invalid bet amount: {amount!r}", amount)
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidBetError(f"Invalid bet amount: {amount!r}", amount) from None
    if not value.is_finite():
        raise InvalidBetError(f"Invalid bet amount: {amount!r}", amount)
    if value != value.to_integral_value():
        raise InvalidBetError("Bet must be a whole number of units", amount)
    return Decimal(int(value))


class _RoundTransition:
    """
    Applies one action to a private copy of a round.

    The input round is never touched, so a rejection anywhere in an action
    leaves the caller's snapshot exactly as it was.
    """

    def __init__(self, rnd: Round, rules: RuleSet, rng: Random) -> None:
        self.round = rnd.copy()
        self.rules = rules
        self.rng = rng
        self.events: list[GameEvent] = []

        self.machine = Machine(
            model=self,
            states=Phase,
            transitions=[dict(t) for t in TRANSITIONS],
            initial=rnd.phase,
            auto_transitions=False,
            model_attribute="phase",
            after_state_change="_sync_phase",
        )

    def _sync_phase(self) -> None:
        self.round.phase = self.phase

    def _emit(self, event_type: EventType, **data: Any) -> None:
        self.events.append(GameEvent(event_type=event_type, data=data))

    def _require(self, action: Action, *phases: Phase) -> None:
        if self.round.phase not in phases:
            raise IllegalActionError(action.value, self.round.phase.value)

    def _active(self, action: Action) -> HandSlot:
        self._require(action, Phase.PLAYER_TURN)
        slot = self.round.active_slot
        if slot is None:
            raise IllegalActionError(action.value, self.round.phase.value, "no active hand")
        return slot

    def apply(self, action: Action, amount: Any = None) -> None:
        handlers: dict[Action, Callable[[], None]] = {
            Action.HIT: self._hit,
            Action.STAND: self._stand,
            Action.DOUBLE: self._double,
            Action.SPLIT: self._split,
            Action.TAKE_INSURANCE: self._take_insurance,
            Action.DECLINE_INSURANCE: self._decline_insurance,
            Action.DEALER_STEP: self._dealer_step,
            Action.NEW_ROUND: self._new_round,
        }
        if action == Action.PLACE_BET:
            self._place_bet(amount)
        else:
            handlers[action]()

    # Betting and dealing

    def _place_bet(self, amount: Any) -> None:
        self._require(Action.PLACE_BET, Phase.BETTING)
        rnd = self.round

        stake = _parse_bet(amount)
        if stake < self.rules.min_bet:
            raise InvalidBetError(f"Minimum bet is {self.rules.min_bet}", amount)
        if stake > rnd.bankroll:
            raise InvalidBetError(f"Bet {stake} exceeds bankroll {rnd.bankroll}", amount)

        rnd.opening_bankroll = rnd.bankroll
        rnd.bankroll -= stake
        rnd.slots = [HandSlot(bet=stake)]
        rnd.dealer_hand = Hand()
        rnd.active_index = 0
        rnd.insurance_status = InsuranceStatus.NOT_OFFERED
        rnd.insurance_bet = None
        rnd.insurance_payout = Decimal("0")

        self._emit(EventType.BET_PLACED, amount=stake, bankroll=rnd.bankroll)
        self.accept_bet()
        self._deal()

    def _reshuffle_if_needed(self) -> None:
        if self.round.shoe.needs_reshuffle(self.rules.reshuffle_threshold):
            remaining = self.round.shoe.cards_remaining
            self.round.shoe = Shoe.build(self.rules.num_decks, rng=self.rng)
            logger.info("Reshuffled shoe with %d cards remaining", remaining)
            self._emit(EventType.SHOE_SHUFFLED, cards_remaining=remaining)

    def _draw_to(self, hand: Hand, target: str, face_up: bool = True) -> Card:
        card = self.round.shoe.draw()
        hand.add_card(card)
        self._emit(
            EventType.CARD_DEALT,
            card=str(card) if face_up else "??",
            hand=target,
        )
        return card

    def _deal(self) -> None:
        rnd = self.round
        self._reshuffle_if_needed()

        slot = rnd.slots[0]
        # Order matters: player, player, dealer up-card, dealer hole card
        self._draw_to(slot.hand, "player")
        self._draw_to(slot.hand, "player")
        self._draw_to(rnd.dealer_hand, "dealer")
        self._draw_to(rnd.dealer_hand, "dealer", face_up=False)

        slot.can_double = can_double(slot.hand)
        slot.can_split = can_split(slot.hand, rnd.bankroll, slot.bet)
        self._emit(EventType.ROUND_STARTED, round_number=rnd.round_number)

        if is_blackjack(slot.hand):
            self._emit(EventType.PLAYER_BLACKJACK)
            self.settle_natural()
            self._settle()
            return

        up_card = rnd.dealer_up_card
        if up_card is not None and up_card.is_ace:
            rnd.insurance_status = InsuranceStatus.OFFERED
            self._emit(
                EventType.INSURANCE_OFFERED,
                cost=slot.bet * self.rules.insurance_fraction,
            )
            return

        self.start_play()

    # Insurance

    def _pending_offer(self, action: Action) -> None:
        if not self.round.insurance_pending:
            raise IllegalActionError(
                action.value,
                self.round.phase.value,
                f"insurance is {self.round.insurance_status.value}",
            )

    def _take_insurance(self) -> None:
        self._pending_offer(Action.TAKE_INSURANCE)
        rnd = self.round

        cost = rnd.slots[0].bet * self.rules.insurance_fraction
        if rnd.bankroll < cost:
            raise InsufficientFundsError("take insurance", cost, rnd.bankroll)

        rnd.bankroll -= cost
        rnd.insurance_bet = cost
        rnd.insurance_status = InsuranceStatus.TAKEN
        self._emit(EventType.INSURANCE_TAKEN, amount=cost)
        self.start_play()

    def _decline_insurance(self) -> None:
        self._pending_offer(Action.DECLINE_INSURANCE)
        self.round.insurance_status = InsuranceStatus.DECLINED
        self._emit(EventType.INSURANCE_DECLINED)
        self.start_play()

    # Player actions

    def _hit(self) -> None:
        slot = self._active(Action.HIT)

        self._draw_to(slot.hand, "player")
        slot.can_double = False
        slot.can_split = False
        self._emit(
            EventType.PLAYER_HIT,
            hand_index=self.round.active_index,
            hand_value=slot.hand.value,
        )

        if is_bust(slot.hand):
            self._bust(slot)
            self._advance()

    def _stand(self) -> None:
        slot = self._active(Action.STAND)
        self._emit(
            EventType.PLAYER_STAND,
            hand_index=self.round.active_index,
            hand_value=slot.hand.value,
        )
        self._advance()

    def _double(self) -> None:
        slot = self._active(Action.DOUBLE)
        rnd = self.round

        if not slot.can_double:
            raise IllegalActionError(Action.DOUBLE.value, rnd.phase.value, "hand cannot be doubled")
        if rnd.bankroll < slot.bet:
            raise InsufficientFundsError("double", slot.bet, rnd.bankroll)

        rnd.bankroll -= slot.bet
        slot.bet *= 2
        slot.is_doubled = True
        slot.can_double = False
        slot.can_split = False

        self._draw_to(slot.hand, "player")
        self._emit(
            EventType.PLAYER_DOUBLE,
            hand_index=rnd.active_index,
            hand_value=slot.hand.value,
            new_bet=slot.bet,
        )

        if is_bust(slot.hand):
            self._bust(slot)
        # A doubled hand takes exactly one card
        self._advance()

    def _split(self) -> None:
        slot = self._active(Action.SPLIT)
        rnd = self.round

        if not slot.can_split:
            if is_pair(slot.hand) and not slot.is_split_hand and rnd.bankroll < slot.bet:
                raise InsufficientFundsError("split", slot.bet, rnd.bankroll)
            raise IllegalActionError(Action.SPLIT.value, rnd.phase.value, "hand cannot be split")
        if rnd.bankroll < slot.bet:
            raise InsufficientFundsError("split", slot.bet, rnd.bankroll)

        rnd.bankroll -= slot.bet
        first, second = slot.hand.cards

        slot.hand = Hand(cards=[first])
        new_slot = HandSlot(hand=Hand(cards=[second]), bet=slot.bet, is_split_hand=True)
        slot.is_split_hand = True
        slot.can_double = False
        slot.can_split = False

        self._draw_to(slot.hand, "player")
        self._draw_to(new_slot.hand, "player")
        rnd.slots.insert(rnd.active_index + 1, new_slot)

        self._emit(
            EventType.PLAYER_SPLIT,
            hand_index=rnd.active_index,
            hand1_value=slot.hand.value,
            hand2_value=new_slot.hand.value,
        )

    def _bust(self, slot: HandSlot) -> None:
        slot.result = HandResult.BUST
        self._emit(EventType.PLAYER_BUSTS, hand_index=self.round.active_index)

    def _advance(self) -> None:
        """Move to the next hand, or end the player's turn after the last."""
        rnd = self.round
        rnd.active_index += 1
        if rnd.active_index < len(rnd.slots):
            return

        if all(slot.is_busted for slot in rnd.slots):
            self.settle_busted()
            self._settle()
            return

        self.finish_hands()
        self._emit(
            EventType.DEALER_REVEALS,
            card=str(rnd.dealer_hand.cards[1]),
            hand_value=rnd.dealer_hand.value,
        )

    # Dealer and settlement

    def _dealer_step(self) -> None:
        self._require(Action.DEALER_STEP, Phase.DEALER_TURN)
        dealer_hand = self.round.dealer_hand

        if dealer_should_hit(dealer_hand):
            self._draw_to(dealer_hand, "dealer")
            self._emit(EventType.DEALER_HITS, hand_value=dealer_hand.value)
            return

        if is_bust(dealer_hand):
            self._emit(EventType.DEALER_BUSTS, hand_value=dealer_hand.value)
        else:
            self._emit(EventType.DEALER_STANDS, hand_value=dealer_hand.value)
        self.settle()
        self._settle()

    def _settle(self) -> None:
        rnd = self.round
        settlement = settle_round(
            rnd.slots,
            rnd.dealer_hand,
            rnd.insurance_bet,
            blackjack_payout=self.rules.blackjack_payout,
            insurance_rate=self.rules.insurance_payout,
        )

        for index, (slot, result, payout) in enumerate(
            zip(rnd.slots, settlement.results, settlement.payouts)
        ):
            slot.result = result
            slot.payout = payout
            slot.can_double = False
            slot.can_split = False
            self._emit(EventType.HAND_SETTLED, hand_index=index, result=result.value, payout=payout)

        if rnd.insurance_bet:
            rnd.insurance_payout = settlement.insurance_payout
            if settlement.insurance_payout:
                self._emit(EventType.INSURANCE_WINS, amount=settlement.insurance_payout)
            else:
                self._emit(EventType.INSURANCE_LOSES, amount=rnd.insurance_bet)

        rnd.bankroll += settlement.total_payout
        logger.debug(
            "Round %d settled: results=%s net=%s bankroll=%s",
            rnd.round_number,
            [r.value for r in settlement.results],
            settlement.net,
            rnd.bankroll,
        )
        self._emit(EventType.ROUND_ENDED, result=settlement.net, bankroll=rnd.bankroll)

    def _new_round(self) -> None:
        self._require(Action.NEW_ROUND, Phase.BETTING, Phase.FINISHED)
        previous = self.round

        shoe = previous.shoe
        if shoe.needs_reshuffle(self.rules.reshuffle_threshold):
            shoe = Shoe.build(self.rules.num_decks, rng=self.rng)
            logger.info("Reshuffled shoe with %d cards remaining", previous.shoe.cards_remaining)
            self._emit(EventType.SHOE_SHUFFLED, cards_remaining=previous.shoe.cards_remaining)

        number = previous.round_number + 1 if previous.phase == Phase.FINISHED else previous.round_number
        self.round = Round.fresh(previous.bankroll, shoe=shoe, round_number=number)
        if previous.phase == Phase.FINISHED:
            self.next_round()


def transition(
    rnd: Round,
    action: Action | str,
    amount: Any = None,
    rules: RuleSet | None = None,
    rng: Random | None = None,
) -> tuple[Round, list[GameEvent]]:
    """
    Apply one action and return the resulting round with its events.

    Args:
        rnd: Current round; never modified
        action: Action to apply (enum or its string value)
        amount: Stake for PLACE_BET
        rules: Table rules (defaults if not provided)
        rng: Random number generator used when a new shoe is built

    Raises:
        EngineError: If the action is not allowed; ``rnd`` is unchanged
    """
    step = _RoundTransition(rnd, rules or RuleSet(), rng or Random())
    step.apply(Action(action), amount)
    return step.round, step.events


def apply_action(
    rnd: Round,
    action: Action | str,
    amount: Any = None,
    rules: RuleSet | None = None,
    rng: Random | None = None,
) -> Round:
    """Pure transition ``(Round, Action) -> Round``; rejections raise ``EngineError``."""
    return transition(rnd, action, amount, rules, rng)[0]


def dealer_steps(
    rnd: Round,
    rules: RuleSet | None = None,
    rng: Random | None = None,
) -> Iterator[Round]:
    """
    Lazily play the dealer's turn one step at a time.

    Yields a snapshot after every dealer draw and a final settled snapshot.
    Calling it again on any yielded snapshot picks up from there.
    """
    while rnd.phase == Phase.DEALER_TURN:
        rnd = apply_action(rnd, Action.DEALER_STEP, rules=rules, rng=rng)
        yield rnd


class BlackjackGame:
    """
    Driver facade holding the latest round snapshot.

    Every command goes through ``transition``; on success the new snapshot
    replaces the old one and its events are emitted, on rejection the typed
    error propagates and nothing changes.
    """

    def __init__(
        self,
        rules: RuleSet | None = None,
        initial_bankroll: Decimal = Decimal("1000"),
        rng: Random | None = None,
        stats_sink: StatsSink | None = None,
        auto_dealer: bool = True,
        initial_round: Round | None = None,
    ) -> None:
        """
        Initialize a new blackjack game.

        Args:
            rules: Table rules (uses defaults if not provided)
            initial_bankroll: Starting bankroll when no round is given
            rng: Random number generator for reproducible games
            stats_sink: Player-record store told about every settled round
            auto_dealer: Play the dealer's turn to the end automatically
            initial_round: Restored round to resume from
        """
        self.rules = rules or RuleSet()
        self.rng = rng or Random()
        self.stats_sink = stats_sink
        self.auto_dealer = auto_dealer
        self.events = EventEmitter()
        self.round = initial_round or Round.fresh(
            Decimal(initial_bankroll),
            shoe=Shoe.build(self.rules.num_decks, rng=self.rng),
        )
        self.last_stats_update: StatsUpdate | None = None

    @property
    def state(self) -> Phase:
        """Get the current round phase."""
        return self.round.phase

    @property
    def bankroll(self) -> Decimal:
        return self.round.bankroll

    def subscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Subscribe to game events."""
        self.events.subscribe(handler, event_type)

    def _execute(self, action: Action, amount: Any = None, drain: bool | None = None) -> Round:
        was_finished = self.round.is_finished
        if drain is None:
            drain = self.auto_dealer
        try:
            self._commit(*transition(self.round, action, amount, self.rules, self.rng))
            if drain:
                for snapshot_events in self._dealer_transitions():
                    self._commit(*snapshot_events)
        except EngineError as exc:
            logger.debug("Rejected %s: %s", action.value, exc.message)
            self.events.emit_new(
                EventType.ACTION_REJECTED,
                action=action.value,
                code=exc.code,
                message=exc.message,
            )
            raise

        if self.round.is_finished and not was_finished:
            self._report_stats()
        return self.round

    def _dealer_transitions(self) -> Iterator[tuple[Round, list[GameEvent]]]:
        while self.round.phase == Phase.DEALER_TURN:
            yield transition(self.round, Action.DEALER_STEP, rules=self.rules, rng=self.rng)

    def _commit(self, rnd: Round, events: list[GameEvent]) -> None:
        self.round = rnd
        for event in events:
            self.events.emit(event)

    def _report_stats(self) -> None:
        update = StatsUpdate.from_round(self.round)
        self.last_stats_update = update
        if self.stats_sink is None:
            return
        try:
            self.stats_sink.record(update)
        except StatsSinkError as exc:
            logger.warning("Failed to record round %d: %s", self.round.round_number, exc)
            self.events.emit_new(EventType.STATS_SYNC_FAILED, reason=str(exc))
            warnings.warn(StatsSyncWarning(str(exc)), stacklevel=4)

    # Driver commands

    def place_bet(self, amount: Any) -> Round:
        """Place a stake and deal the opening cards."""
        return self._execute(Action.PLACE_BET, amount)

    def hit(self) -> Round:
        return self._execute(Action.HIT)

    def stand(self) -> Round:
        return self._execute(Action.STAND)

    def double_down(self) -> Round:
        return self._execute(Action.DOUBLE)

    def split(self) -> Round:
        return self._execute(Action.SPLIT)

    def take_insurance(self) -> Round:
        return self._execute(Action.TAKE_INSURANCE)

    def decline_insurance(self) -> Round:
        return self._execute(Action.DECLINE_INSURANCE)

    def dealer_step(self) -> Round:
        """Play a single dealer step; used when ``auto_dealer`` is off."""
        return self._execute(Action.DEALER_STEP, drain=False)

    def play_dealer(self) -> Round:
        """Play the dealer's turn to settlement."""
        return self._execute(Action.DEALER_STEP, drain=True)

    def new_round(self) -> Round:
        """Start a new Betting round, carrying the bankroll and shoe."""
        return self._execute(Action.NEW_ROUND)

    def perform(self, action: Action | str, amount: Any = None) -> Round:
        """Dispatch a command by name."""
        return self._execute(Action(action), amount)

    # Legality predicates for the presentation layer

    @property
    def can_hit(self) -> bool:
        """Check if hitting is allowed."""
        return self.state == Phase.PLAYER_TURN and self.round.active_slot is not None

    @property
    def can_stand(self) -> bool:
        """Check if standing is allowed."""
        return self.can_hit

    @property
    def can_double(self) -> bool:
        """Check if doubling is allowed and affordable."""
        slot = self.round.active_slot
        return (
            self.can_hit
            and slot is not None
            and slot.can_double
            and slot.bet <= self.round.bankroll
        )

    @property
    def can_split(self) -> bool:
        """Check if splitting is allowed and affordable."""
        slot = self.round.active_slot
        return (
            self.can_hit
            and slot is not None
            and slot.can_split
            and slot.bet <= self.round.bankroll
        )

    @property
    def can_insure(self) -> bool:
        """Check if insurance is on offer and affordable."""
        if not self.round.insurance_pending:
            return False
        cost = self.round.slots[0].bet * self.rules.insurance_fraction
        return cost <= self.round.bankroll

    def available_actions(self) -> list[Action]:
        """List the commands that would currently be accepted."""
        rnd = self.round
        if rnd.phase == Phase.BETTING:
            actions = [Action.NEW_ROUND]
            if rnd.bankroll >= self.rules.min_bet:
                actions.insert(0, Action.PLACE_BET)
            return actions
        if rnd.insurance_pending:
            actions = [Action.DECLINE_INSURANCE]
            if self.can_insure:
                actions.insert(0, Action.TAKE_INSURANCE)
            return actions
        if rnd.phase == Phase.PLAYER_TURN:
            actions = [Action.HIT, Action.STAND]
            if self.can_double:
                actions.append(Action.DOUBLE)
            if self.can_split:
                actions.append(Action.SPLIT)
            return actions
        if rnd.phase == Phase.DEALER_TURN:
            return [Action.DEALER_STEP]
        if rnd.phase == Phase.FINISHED:
            return [Action.NEW_ROUND]
        return []
