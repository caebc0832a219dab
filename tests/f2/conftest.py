"""Fixtures for F2 tests - sandbox, execution and comparison."""

from typing import Any

import pytest

from sqlquest.core.challenges import Challenge, SeedGroup
from sqlquest.db.engine import EngineError, QueryOutput, SqliteEngine

STUDENTS_SCHEMA = "CREATE TABLE Students (id INTEGER, name TEXT, age INTEGER);"
STUDENTS = (
    {"id": 1, "name": "Alice", "age": 22},
    {"id": 2, "name": "Bob", "age": 24},
    {"id": 3, "name": "Charlie", "age": 23},
)


@pytest.fixture
def engine() -> SqliteEngine:
    """Initialized SQLite engine without a query deadline."""
    eng = SqliteEngine(query_timeout=None)
    eng.initialize()
    return eng


@pytest.fixture
def students_challenge() -> Challenge:
    return Challenge(
        id="basic-select",
        title="Basic SELECT",
        schema=STUDENTS_SCHEMA,
        seed_data=STUDENTS,
        expected_result=STUDENTS,
        reward_xp=50,
    )


@pytest.fixture
def filter_challenge() -> Challenge:
    return Challenge(
        id="where-clause",
        title="WHERE Clause",
        schema=STUDENTS_SCHEMA,
        seed_data=STUDENTS,
        expected_result=STUDENTS[1:],
        reward_xp=75,
    )


@pytest.fixture
def open_challenge() -> Challenge:
    """Challenge with no expected result (any non-empty answer)."""
    return Challenge(
        id="explore",
        title="Explore",
        schema="CREATE TABLE T (x INTEGER);",
        seed_data=({"x": 1},),
        expected_result=None,
    )


@pytest.fixture
def courses_challenge() -> Challenge:
    """Multi-table challenge with a different dataset."""
    return Challenge(
        id="courses",
        title="Courses",
        schema=(
            "CREATE TABLE Courses (code TEXT, title TEXT);\n"
            "CREATE TABLE Teachers (name TEXT, course_code TEXT);"
        ),
        seed_data=(
            SeedGroup("Courses", ({"code": "M1", "title": "Math"},)),
            SeedGroup("Teachers", ()),
        ),
        expected_result=({"code": "M1", "title": "Math"},),
    )


class RecordingDatabase:
    """Database double that records statements and close calls."""

    def __init__(self, fail_on: str | None = None):
        self.fail_on = fail_on
        self.executed: list[str] = []
        self.close_calls = 0

    def execute(self, sql: str) -> QueryOutput:
        self.executed.append(sql)
        if self.fail_on is not None and self.fail_on in sql:
            raise EngineError(f"boom: {self.fail_on}")
        return QueryOutput()

    def close(self) -> None:
        self.close_calls += 1


class RecordingEngine:
    """Engine double handing out RecordingDatabase instances."""

    def __init__(self, fail_on: str | None = None, fail_create: bool = False):
        self.fail_on = fail_on
        self.fail_create = fail_create
        self.databases: list[RecordingDatabase] = []

    def create_database(self) -> RecordingDatabase:
        if self.fail_create:
            raise RuntimeError("no memory")
        db = RecordingDatabase(fail_on=self.fail_on)
        self.databases.append(db)
        return db


@pytest.fixture
def recording_engine_factory():
    """Build RecordingEngine doubles."""

    def factory(**kwargs: Any) -> RecordingEngine:
        return RecordingEngine(**kwargs)

    return factory
