"""Route handlers for Web API."""

from sqlquest.web.routes.health import router as health_router
from sqlquest.web.routes.challenges import router as challenges_router
from sqlquest.web.routes.player import router as player_router

__all__ = [
    "health_router",
    "challenges_router",
    "player_router",
]
