"""Fixtures for F1 tests - fixture loading and catalog."""

from typing import Any

import pytest


@pytest.fixture
def students_schema() -> str:
    return "CREATE TABLE Students (id INTEGER, name TEXT, age INTEGER);"


@pytest.fixture
def students_rows() -> list[dict[str, Any]]:
    return [
        {"id": 1, "name": "Alice", "age": 22},
        {"id": 2, "name": "Bob", "age": 24},
        {"id": 3, "name": "Charlie", "age": 23},
    ]


@pytest.fixture
def catalog_document(students_schema, students_rows) -> dict[str, Any]:
    """Minimal valid catalog document with a flat and a grouped challenge."""
    return {
        "$schema": "challenges_v1",
        "challenges": [
            {
                "id": "basic-select",
                "title": "Basic SELECT",
                "schema": students_schema,
                "seed_data": students_rows,
                "expected_result": students_rows,
                "reward_xp": 50,
                "required_xp": 0,
                "hints": ["Use SELECT *"],
            },
            {
                "id": "join",
                "title": "JOIN",
                "schema": (
                    "CREATE TABLE Students (id INTEGER, name TEXT, age INTEGER);\n"
                    "CREATE TABLE Enrollments (student_id INTEGER, course TEXT);"
                ),
                "seed_data": [
                    {"table": "Students", "rows": students_rows[:2]},
                    {"table": "Enrollments", "rows": [{"student_id": 1, "course": "Math"}]},
                ],
                "reward_xp": 200,
                "required_xp": 350,
            },
        ],
    }
