"""Pydantic schemas for the Web API.

Serialization models for challenges, attempts and player state.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field


# =============================================================================
# CHALLENGE SCHEMAS
# =============================================================================


class ChallengeSummary(BaseModel):
    """Challenge list entry with the player's flags."""

    id: str
    title: str
    environment: str = ""
    reward_xp: int
    required_xp: int
    unlocked: bool
    completed: bool


class ChallengeListResponse(BaseModel):
    """Response for list of challenges."""

    challenges: list[ChallengeSummary]
    count: int


class SeedTable(BaseModel):
    """Sample rows of one table."""

    table: str | None = None
    rows: list[dict[str, Any]]


class ChallengeDetail(ChallengeSummary):
    """Full challenge for display."""

    description: str = ""
    schema_sql: str
    sample_data: list[SeedTable]
    expected_result: list[dict[str, Any]] | None = None
    hints: list[str] = Field(default_factory=list)


# =============================================================================
# ATTEMPT SCHEMAS
# =============================================================================


class AttemptRequest(BaseModel):
    """Request body for submitting a query."""

    query: str = Field(..., max_length=20000)


class PlayerResponse(BaseModel):
    """Player progress."""

    xp: int
    level: int
    xp_to_next_level: int
    completed_challenge_ids: list[str]
    unlocked_challenge_ids: list[str]


class CompletionResponse(BaseModel):
    """Progression change triggered by a correct answer."""

    xp_awarded: int
    already_completed: bool
    leveled_up: bool
    newly_unlocked: list[str]
    warnings: list[str] = Field(default_factory=list)


class AttemptResponse(BaseModel):
    """Result of one attempt."""

    kind: Literal["invalid", "execution_error", "evaluated", "aborted"]
    message: str | None = None
    columns: list[str] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    is_correct: bool | None = None
    graded: bool | None = None
    feedback: str | None = None
    completion: CompletionResponse | None = None
    player: PlayerResponse


# =============================================================================
# HEALTH
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    sqlite_version: str
    engine_ready: bool = False
    challenges: int = 0
