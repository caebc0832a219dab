"""Error taxonomy for challenge evaluation.

- ContentError (SchemaError, FixtureError): the challenge data itself is
  malformed. A content bug, never shown raw to the learner.
- ProvisionError: the sandbox could not be set up. A system fault.
- ProgressionError: invalid progression call (e.g. non-positive award).
- CatalogError: the challenge catalog file is malformed.

Learner-side failures (empty query, rejected SQL) are not exceptions; they
are tagged results in sqlquest.core.evaluator.
"""

from __future__ import annotations


class EvaluationError(Exception):
    """Base error for the evaluation pipeline."""

    pass


class ContentError(EvaluationError):
    """Challenge definition is malformed."""

    pass


class SchemaError(ContentError):
    """A schema DDL statement failed or the schema is empty."""

    def __init__(self, message: str, statement: str | None = None):
        self.statement = statement
        super().__init__(message)


class FixtureError(ContentError):
    """Seed data cannot be turned into valid inserts."""

    def __init__(self, message: str, table: str | None = None):
        self.table = table
        super().__init__(message)


class ProvisionError(EvaluationError):
    """Sandbox database could not be created."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"sandbox provisioning failed: {cause}")


class ProgressionError(ValueError):
    """Invalid progression operation."""

    pass


class CatalogError(Exception):
    """Challenge catalog is malformed."""

    pass


class ChallengeNotFoundError(Exception):
    """Raised when a challenge id is not in the catalog."""

    def __init__(self, challenge_id: str):
        self.challenge_id = challenge_id
        super().__init__(f"Challenge '{challenge_id}' not found")


class ChallengeLockedError(Exception):
    """Raised when attempting a challenge the player has not unlocked."""

    def __init__(self, challenge_id: str, required_xp: int):
        self.challenge_id = challenge_id
        self.required_xp = required_xp
        super().__init__(
            f"Challenge '{challenge_id}' is locked (requires {required_xp} XP)"
        )
