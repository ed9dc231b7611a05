"""Game API endpoints."""

import logging
import time
import warnings
from decimal import Decimal
from typing import Annotated, Any, Callable

from fastapi import APIRouter, HTTPException, Header
from redis.exceptions import RedisError

from api.schemas import (
    ActionRequest,
    BetRequest,
    CardResponse,
    DealerHandResponse,
    ErrorDetail,
    GameStateResponse,
    HandResponse,
)
from api.session import create_session, extract_session_id, get_session_store
from config import config
from core.cards import Card
from core.errors import EngineError, IllegalActionError
from core.game import BlackjackGame, Phase, Round
from core.game.round import HandSlot
from core.game.snapshot import restore_round, serialize_round
from core.game.stats import InMemoryStatsSink, PlayerRecord, StatsSyncWarning
from core.rules import RuleSet

logger = logging.getLogger(__name__)

router = APIRouter()

# In-memory game cache (for performance, backed by session store)
_games: dict[str, BlackjackGame] = {}

# Session data keys
SESSION_KEY_ROUND = "round"
SESSION_KEY_PLAYER = "player"
SESSION_KEY_CREATED_AT = "created_at"
SESSION_KEY_LAST_ACTIVITY = "last_activity"


def table_rules() -> RuleSet:
    """Build the table rules from configuration."""
    return RuleSet(
        num_decks=config.game.num_decks,
        min_bet=config.game.min_bet,
        reshuffle_threshold=config.game.reshuffle_threshold,
    )


def serialize_record(record: PlayerRecord) -> dict[str, Any]:
    """Serialize a player record to a dict."""
    return {
        "bankroll": str(record.bankroll),
        "total_hands_played": record.total_hands_played,
        "hands_won": record.hands_won,
        "hands_lost": record.hands_lost,
        "biggest_win": str(record.biggest_win),
    }


def deserialize_record(data: dict[str, Any]) -> PlayerRecord:
    """Deserialize a player record from a dict."""
    return PlayerRecord(
        bankroll=Decimal(data["bankroll"]),
        total_hands_played=data.get("total_hands_played", 0),
        hands_won=data.get("hands_won", 0),
        hands_lost=data.get("hands_lost", 0),
        biggest_win=Decimal(data.get("biggest_win", "0")),
    )


def _new_game(record: PlayerRecord, rnd: Round | None = None) -> BlackjackGame:
    return BlackjackGame(
        rules=table_rules(),
        initial_bankroll=record.bankroll,
        stats_sink=InMemoryStatsSink(record),
        auto_dealer=config.game.auto_dealer,
        initial_round=rnd,
    )


def player_record(game: BlackjackGame) -> PlayerRecord:
    """The record held by the game's stats sink."""
    return game.stats_sink.record_data


def resolve_session(token: str) -> str:
    """Verify the signed session token and return the raw session ID."""
    session_id = extract_session_id(token)
    if session_id is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return session_id


async def _load_game(session_id: str) -> BlackjackGame | None:
    """Load game from session store, discarding a stale round."""
    store = await get_session_store()
    session_data = await store.get(session_id)
    if session_data is None:
        return None

    if SESSION_KEY_PLAYER in session_data:
        record = deserialize_record(session_data[SESSION_KEY_PLAYER])
    else:
        record = PlayerRecord(bankroll=config.game.starting_bankroll)

    rnd = restore_round(session_data.get(SESSION_KEY_ROUND), record.bankroll)
    return _new_game(record, rnd)


async def _save_game(session_id: str, game: BlackjackGame) -> list[str]:
    """
    Save round and player record to the session store.

    Returns:
        Warnings for the client; a failed save keeps the in-memory game
    """
    try:
        store = await get_session_store()
        session_data = await store.get(session_id) or {}
        session_data[SESSION_KEY_ROUND] = serialize_round(game.round)
        session_data[SESSION_KEY_PLAYER] = serialize_record(player_record(game))
        session_data[SESSION_KEY_LAST_ACTIVITY] = int(time.time())
        session_data.setdefault(SESSION_KEY_CREATED_AT, int(time.time()))
        await store.set(session_id, session_data)
    except (RedisError, OSError) as exc:
        logger.warning("Failed to save session %s: %s", session_id, exc)
        return [f"Progress not saved: {exc}"]
    return []


async def get_game(session_id: str) -> BlackjackGame:
    """Get or create a game for the session."""
    if session_id in _games:
        return _games[session_id]

    game = await _load_game(session_id)
    if game is None:
        game = _new_game(PlayerRecord(bankroll=config.game.starting_bankroll))
        await _save_game(session_id, game)

    _games[session_id] = game
    return game


def _card_to_response(card: Card) -> CardResponse:
    return CardResponse(rank=str(card.rank), suit=card.suit.value, value=card.value)


def _hand_to_response(slot: HandSlot) -> HandResponse:
    """Convert a HandSlot to HandResponse."""
    hand = slot.hand
    return HandResponse(
        cards=[_card_to_response(c) for c in hand.cards],
        value=hand.value,
        is_soft=hand.is_soft,
        is_blackjack=hand.is_blackjack,
        is_busted=hand.is_busted,
        bet=float(slot.bet),
        result=slot.result.value,
        payout=float(slot.payout),
        is_doubled=slot.is_doubled,
        is_split_hand=slot.is_split_hand,
    )


def _dealer_to_response(rnd: Round) -> DealerHandResponse:
    hidden = rnd.phase in (Phase.DEALING, Phase.PLAYER_TURN)
    cards = rnd.dealer_hand.cards[:1] if hidden else rnd.dealer_hand.cards
    return DealerHandResponse(
        cards=[_card_to_response(c) for c in cards],
        value=None if hidden or not cards else rnd.dealer_hand.value,
        hole_card_hidden=hidden and len(rnd.dealer_hand.cards) > 1,
    )


def game_state_response(game: BlackjackGame, warnings_: list[str] | None = None) -> GameStateResponse:
    """Convert game state to response."""
    rnd = game.round
    up_card = rnd.dealer_up_card

    return GameStateResponse(
        state=rnd.phase.value,
        round_number=rnd.round_number,
        player_hands=[_hand_to_response(s) for s in rnd.slots],
        current_hand_index=rnd.active_index,
        dealer_hand=_dealer_to_response(rnd),
        dealer_showing=_card_to_response(up_card) if up_card else None,
        bankroll=float(rnd.bankroll),
        cards_remaining=rnd.shoe.cards_remaining,
        insurance_offered=rnd.insurance_pending,
        insurance_bet=float(rnd.insurance_bet) if rnd.insurance_bet is not None else None,
        can_hit=game.can_hit,
        can_stand=game.can_stand,
        can_double=game.can_double,
        can_split=game.can_split,
        can_insure=game.can_insure,
        net_result=float(rnd.net_result),
        warnings=warnings_ or [],
    )


async def _run(session_id: str, command: Callable[[BlackjackGame], Round]) -> GameStateResponse:
    """Run a driver command, persist the result and report warnings."""
    game = await get_game(session_id)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", StatsSyncWarning)
        try:
            command(game)
        except EngineError as exc:
            detail = ErrorDetail(code=exc.code, message=exc.message)
            raise HTTPException(status_code=400, detail=detail.model_dump()) from exc

    messages = [str(w.message) for w in caught if issubclass(w.category, StatsSyncWarning)]
    messages += await _save_game(session_id, game)
    return game_state_response(game, messages)


@router.post("/new")
async def new_game(
    session_token: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> dict[str, str]:
    """Create a new game session, keeping the player record of an existing one."""
    session_id = extract_session_id(session_token) if session_token else None
    if session_id is None:
        session_token = await create_session()
        session_id = resolve_session(session_token)

    existing = _games.get(session_id) or await _load_game(session_id)
    if existing and existing.state not in (Phase.BETTING, Phase.FINISHED):
        exc = IllegalActionError("start a new game", existing.state.value, "round in progress")
        detail = ErrorDetail(code=exc.code, message=exc.message)
        raise HTTPException(status_code=400, detail=detail.model_dump())
    record = player_record(existing) if existing else PlayerRecord(bankroll=config.game.starting_bankroll)

    game = _new_game(record)
    _games[session_id] = game
    await _save_game(session_id, game)

    return {"session_id": session_token}


@router.get("/state")
async def get_state(
    session_token: Annotated[str, Header(alias="X-Session-ID")],
) -> GameStateResponse:
    """Get current game state."""
    game = await get_game(resolve_session(session_token))
    return game_state_response(game)


@router.post("/bet")
async def place_bet(
    request: BetRequest,
    session_token: Annotated[str, Header(alias="X-Session-ID")],
) -> GameStateResponse:
    """Place a bet and deal cards."""
    return await _run(resolve_session(session_token), lambda game: game.place_bet(request.amount))


@router.post("/action")
async def player_action(
    request: ActionRequest,
    session_token: Annotated[str, Header(alias="X-Session-ID")],
) -> GameStateResponse:
    """Execute a player action."""
    actions: dict[str, Callable[[BlackjackGame], Round]] = {
        "hit": BlackjackGame.hit,
        "stand": BlackjackGame.stand,
        "double": BlackjackGame.double_down,
        "split": BlackjackGame.split,
        "insurance": BlackjackGame.take_insurance,
        "decline_insurance": BlackjackGame.decline_insurance,
    }
    return await _run(resolve_session(session_token), actions[request.action])


@router.post("/dealer-step")
async def dealer_step(
    session_token: Annotated[str, Header(alias="X-Session-ID")],
) -> GameStateResponse:
    """Reveal the next dealer card when the dealer is not auto-played."""
    return await _run(resolve_session(session_token), BlackjackGame.dealer_step)


@router.post("/new-round")
async def new_round(
    session_token: Annotated[str, Header(alias="X-Session-ID")],
) -> GameStateResponse:
    """Return to betting for the next round."""
    return await _run(resolve_session(session_token), BlackjackGame.new_round)
