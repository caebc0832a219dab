"""FastAPI application factory.

Main entry point for the SQL Quest Web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sqlquest.core.game import GameService
from sqlquest.web.routes import (
    challenges_router,
    health_router,
    player_router,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the game service at startup so engine problems fail fast."""
    if getattr(app.state, "game_service", None) is None:
        app.state.game_service = GameService.from_config()
    service: GameService = app.state.game_service
    logger.info(
        "api_startup",
        challenges=len(service.catalog),
        player_xp=service.player_state().xp,
    )
    yield


def create_app(service: GameService | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        service: Pre-built game service. Built from config when None.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="SQL Quest API",
        description="Evaluate SQL challenge attempts and track player progress",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.game_service = service

    # CORS middleware for web clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(challenges_router)
    app.include_router(player_router)

    return app


# Default app instance for uvicorn
app = create_app()
