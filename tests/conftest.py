"""Shared test fixtures for codeinsight."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from codeinsight.analysis.models import CODE_RUN, CODE_SUBMIT, CodingEvent, UserCodingProfile
from codeinsight.storage.db import get_connection
from codeinsight.storage.repository import Repository

NOW = datetime(2024, 6, 15, 12, 0, 0)

SAMPLE_CODE = """\
def two_sum(nums, target):
    seen = {}
    for i, n in enumerate(nums):
        if target - n in seen:
            return [seen[target - n], i]
        seen[n] = i
"""


def make_event(
    event_type: str = CODE_RUN,
    user_id: str = "alice",
    problem_id: str | None = "1",
    problem_title: str | None = "Two Sum Array",
    language: str | None = "python",
    source_code: str | None = SAMPLE_CODE,
    minutes_ago: int = 0,
) -> CodingEvent:
    return CodingEvent(
        user_id=user_id,
        event_type=event_type,
        problem_id=problem_id,
        problem_title=problem_title,
        language=language,
        source_code=source_code,
        timestamp=NOW - timedelta(minutes=minutes_ago),
    )


def make_response(text: str) -> MagicMock:
    """Build a fake anthropic Message with a single text block."""
    response = MagicMock()
    content_block = MagicMock()
    content_block.text = text
    response.content = [content_block]
    return response


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def db_conn(db_path: Path) -> sqlite3.Connection:
    conn = get_connection(db_path)
    yield conn
    conn.close()


@pytest.fixture
def repo(db_conn: sqlite3.Connection) -> Repository:
    return Repository(db_conn)


@pytest.fixture
def scenario_b_events() -> list[CodingEvent]:
    """12 runs and 4 submits in python across 6 array problems."""
    events = []
    for i in range(12):
        events.append(
            make_event(CODE_RUN, problem_id=str(i % 6), problem_title=f"Array Problem {i % 6}", minutes_ago=i)
        )
    for i in range(4):
        events.append(
            make_event(CODE_SUBMIT, problem_id=str(i), problem_title=f"Array Problem {i}", minutes_ago=20 + i)
        )
    return events


@pytest.fixture
def scenario_b_profile() -> UserCodingProfile:
    return UserCodingProfile(
        user_id="alice",
        period_days=30,
        total_problems=6,
        total_runs=12,
        total_submits=4,
        languages_used={"python"},
        most_used_language="python",
        problem_categories={"Array": 6},
    )


@pytest.fixture
def busy_profile() -> UserCodingProfile:
    """A profile that triggers every positive threshold."""
    return UserCodingProfile(
        user_id="bob",
        period_days=90,
        total_problems=60,
        total_runs=80,
        total_submits=50,
        languages_used={"python", "java", "cpp"},
        most_used_language="python",
        problem_categories={
            "Array": 20,
            "String": 10,
            "Tree": 15,
            "Graph": 8,
            "Dynamic Programming": 12,
        },
    )


@pytest.fixture
def empty_profile() -> UserCodingProfile:
    return UserCodingProfile(user_id="carol", period_days=7)
