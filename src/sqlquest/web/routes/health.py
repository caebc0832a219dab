"""Health check endpoint."""

import sqlite3
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from sqlquest.web.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Check API health and whether the SQL engine is ready.

    Never builds the game service; a service that has not been built yet
    reports engine_ready=False.
    """
    service = getattr(request.app.state, "game_service", None)
    engine_ready = bool(service is not None and getattr(service.engine, "initialized", False))
    challenge_count = len(service.catalog) if service is not None else 0

    return HealthResponse(
        status="ok",
        version="0.1.0",
        timestamp=datetime.now(timezone.utc).isoformat(),
        sqlite_version=sqlite3.sqlite_version,
        engine_ready=engine_ready,
        challenges=challenge_count,
    )
