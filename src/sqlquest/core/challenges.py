"""Challenge catalog.

Loads the static challenge catalog from data/config/challenges_v1.yaml
with fallback to a built-in default catalog.

Usage:
    from sqlquest.core.challenges import load_catalog

    catalog = load_catalog()
    challenge = catalog.get("basic-select")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Sequence, Union

import structlog
import yaml

from sqlquest.core.errors import CatalogError, ChallengeNotFoundError

logger = structlog.get_logger(__name__)

CATALOG_SCHEMA = "challenges_v1"
CATALOG_FILE = Path("data/config/challenges_v1.yaml")

Row = Mapping[str, Any]


@dataclass(frozen=True)
class SeedGroup:
    """Seed rows for one named table (multi-table challenges)."""

    table_name: str
    rows: tuple[Row, ...] = ()


SeedData = Union[tuple[Row, ...], tuple[SeedGroup, ...]]


@dataclass(frozen=True)
class Challenge:
    """One teaching unit: schema, seed rows and the expected answer."""

    id: str
    title: str
    schema: str
    seed_data: SeedData = ()
    expected_result: tuple[Row, ...] | None = None
    reward_xp: int = 50
    required_xp: int = 0
    description: str = ""
    environment: str = ""
    hints: tuple[str, ...] = ()

    @property
    def is_multi_table(self) -> bool:
        """True when seed data is grouped by table."""
        return any(isinstance(item, SeedGroup) for item in self.seed_data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        if self.is_multi_table:
            seed: list[Any] = [
                {"table": g.table_name, "rows": [dict(r) for r in g.rows]}
                for g in self.seed_data
            ]
        else:
            seed = [dict(r) for r in self.seed_data]
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "environment": self.environment,
            "hints": list(self.hints),
            "schema": self.schema,
            "seed_data": seed,
            "expected_result": (
                None
                if self.expected_result is None
                else [dict(r) for r in self.expected_result]
            ),
            "reward_xp": self.reward_xp,
            "required_xp": self.required_xp,
        }


@dataclass(frozen=True)
class Catalog:
    """Ordered, read-only collection of challenges."""

    challenges: tuple[Challenge, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[Challenge]:
        return iter(self.challenges)

    def __len__(self) -> int:
        return len(self.challenges)

    def __contains__(self, challenge_id: object) -> bool:
        return any(c.id == challenge_id for c in self.challenges)

    def get(self, challenge_id: str) -> Challenge:
        """Get challenge by ID.

        Raises:
            ChallengeNotFoundError: If no challenge has this ID
        """
        for challenge in self.challenges:
            if challenge.id == challenge_id:
                return challenge
        raise ChallengeNotFoundError(challenge_id)

    def gates(self) -> dict[str, int]:
        """Map of challenge ID to the XP required to unlock it."""
        return {c.id: c.required_xp for c in self.challenges}


# =============================================================================
# PARSING
# =============================================================================


def _freeze_rows(rows: Any, where: str) -> tuple[Row, ...]:
    """Validate a list of row mappings and freeze it."""
    if not isinstance(rows, list):
        raise CatalogError(f"{where}: rows must be a list")
    frozen = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            raise CatalogError(f"{where}: row {i} must be a mapping")
        frozen.append(MappingProxyType({str(k): v for k, v in row.items()}))
    return tuple(frozen)


def _parse_seed_data(data: Any, where: str) -> SeedData:
    """Parse flat or grouped seed data.

    Grouped entries look like {"table": name, "rows": [...]}; "table_name"
    is accepted as an alias for "table".
    """
    if data is None:
        return ()
    if not isinstance(data, list):
        raise CatalogError(f"{where}: seed_data must be a list")

    def is_group(item: Any) -> bool:
        return (
            isinstance(item, dict)
            and ("table" in item or "table_name" in item)
            and "rows" in item
        )

    if data and all(is_group(item) for item in data):
        groups = []
        for item in data:
            name = item.get("table", item.get("table_name"))
            if not isinstance(name, str) or not name:
                raise CatalogError(f"{where}: seed group needs a table name")
            groups.append(
                SeedGroup(
                    table_name=name,
                    rows=_freeze_rows(item["rows"], f"{where}[{name}]"),
                )
            )
        return tuple(groups)

    if any(is_group(item) for item in data):
        raise CatalogError(f"{where}: cannot mix seed groups and plain rows")

    return _freeze_rows(data, where)


def parse_challenge(data: dict[str, Any]) -> Challenge:
    """Parse one catalog entry into a Challenge.

    Raises:
        CatalogError: If required fields are missing or invalid
    """
    if not isinstance(data, dict):
        raise CatalogError("challenge entry must be a mapping")

    raw_id = data.get("id")
    if raw_id is None or str(raw_id).strip() == "":
        raise CatalogError("challenge entry is missing 'id'")
    challenge_id = str(raw_id)
    where = f"challenge '{challenge_id}'"

    schema = data.get("schema")
    if not isinstance(schema, str) or not schema.strip():
        raise CatalogError(f"{where}: 'schema' must be non-empty text")

    reward_xp = data.get("reward_xp", 50)
    if isinstance(reward_xp, bool) or not isinstance(reward_xp, int) or reward_xp <= 0:
        raise CatalogError(f"{where}: 'reward_xp' must be a positive integer")

    required_xp = data.get("required_xp", 0)
    if isinstance(required_xp, bool) or not isinstance(required_xp, int) or required_xp < 0:
        raise CatalogError(f"{where}: 'required_xp' must be a non-negative integer")

    expected = data.get("expected_result")
    expected_rows = None if expected is None else _freeze_rows(expected, f"{where} expected_result")

    return Challenge(
        id=challenge_id,
        title=str(data.get("title", challenge_id)),
        description=str(data.get("description", "")),
        environment=str(data.get("environment", "")),
        hints=tuple(str(h) for h in data.get("hints") or []),
        schema=schema,
        seed_data=_parse_seed_data(data.get("seed_data"), where),
        expected_result=expected_rows,
        reward_xp=reward_xp,
        required_xp=required_xp,
    )


def parse_catalog(data: dict[str, Any]) -> Catalog:
    """Parse a catalog document.

    Raises:
        CatalogError: On schema tag mismatch, bad entries or duplicate IDs
    """
    if not isinstance(data, dict):
        raise CatalogError("catalog document must be a mapping")
    if data.get("$schema") != CATALOG_SCHEMA:
        raise CatalogError(
            f"expected $schema '{CATALOG_SCHEMA}', got '{data.get('$schema')}'"
        )

    entries = data.get("challenges") or []
    if not isinstance(entries, list):
        raise CatalogError("'challenges' must be a list")

    challenges = [parse_challenge(entry) for entry in entries]

    seen: set[str] = set()
    for challenge in challenges:
        if challenge.id in seen:
            raise CatalogError(f"duplicate challenge id '{challenge.id}'")
        seen.add(challenge.id)

    return Catalog(challenges=tuple(challenges))


def _get_default_catalog() -> Catalog:
    """Built-in catalog used when no catalog file exists."""
    schema = "CREATE TABLE Students (id INTEGER, name TEXT, age INTEGER);"
    students = [
        {"id": 1, "name": "Alice", "age": 22},
        {"id": 2, "name": "Bob", "age": 24},
        {"id": 3, "name": "Charlie", "age": 23},
    ]
    return parse_catalog(
        {
            "$schema": CATALOG_SCHEMA,
            "challenges": [
                {
                    "id": "basic-select",
                    "title": "Basic SELECT",
                    "description": "Select all rows from the Students table to see who's enrolled.",
                    "schema": schema,
                    "seed_data": students,
                    "expected_result": students,
                    "reward_xp": 50,
                    "required_xp": 0,
                    "hints": ["Use SELECT * FROM table_name"],
                },
                {
                    "id": "where-clause",
                    "title": "WHERE Clause",
                    "description": "Find all students who are older than 22 years.",
                    "schema": schema,
                    "seed_data": students,
                    "expected_result": students[1:],
                    "reward_xp": 75,
                    "required_xp": 50,
                    "hints": ["Use WHERE clause to filter results"],
                },
            ],
        }
    )


def load_catalog(path: Path | None = None) -> Catalog:
    """Load the challenge catalog.

    Args:
        path: Catalog YAML file. Defaults to data/config/challenges_v1.yaml

    Returns:
        Catalog (built-in default if the file does not exist)

    Raises:
        CatalogError: If the file exists but is malformed
    """
    catalog_path = path or CATALOG_FILE

    if not catalog_path.exists():
        logger.warning("catalog.file_not_found", path=str(catalog_path))
        return _get_default_catalog()

    try:
        data = yaml.safe_load(catalog_path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, OSError) as e:
        raise CatalogError(f"cannot read catalog {catalog_path}: {e}") from e

    catalog = parse_catalog(data)
    logger.info("catalog.loaded", path=str(catalog_path), challenges=len(catalog))
    return catalog
