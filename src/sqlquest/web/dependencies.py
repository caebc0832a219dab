"""Request dependencies for the Web API."""

from fastapi import Request

from sqlquest.core.game import GameService


def get_game_service(request: Request) -> GameService:
    """Game service attached to the application.

    Built from config on first use when create_app() was not given one.
    """
    service = getattr(request.app.state, "game_service", None)
    if service is None:
        service = GameService.from_config()
        request.app.state.game_service = service
    return service
