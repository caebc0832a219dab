"""Player progress endpoint."""

from fastapi import APIRouter, Depends

from sqlquest.core.game import GameService
from sqlquest.web.dependencies import get_game_service
from sqlquest.web.routes.challenges import player_response
from sqlquest.web.schemas import PlayerResponse

router = APIRouter(prefix="/api/player", tags=["player"])


@router.get("", response_model=PlayerResponse)
async def get_player(service: GameService = Depends(get_game_service)) -> PlayerResponse:
    """Current XP, level, completions and unlocks."""
    return player_response(service.player_state())
