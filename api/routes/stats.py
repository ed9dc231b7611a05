"""Player statistics endpoints."""

from typing import Annotated

from fastapi import APIRouter, Header

from api.routes.game import get_game, player_record, resolve_session
from api.schemas import PlayerRecordResponse

router = APIRouter()


@router.get("/player")
async def get_player_stats(
    session_token: Annotated[str, Header(alias="X-Session-ID")],
) -> PlayerRecordResponse:
    """Get the lifetime record of the session's player."""
    game = await get_game(resolve_session(session_token))
    record = player_record(game)

    return PlayerRecordResponse(
        bankroll=float(record.bankroll),
        total_hands_played=record.total_hands_played,
        hands_won=record.hands_won,
        hands_lost=record.hands_lost,
        biggest_win=float(record.biggest_win),
        win_rate=record.win_rate,
    )
