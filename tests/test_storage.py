"""Tests for codeinsight.storage (db + repository)."""

from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import date, timedelta, timezone
from pathlib import Path

import pytest

from codeinsight.analysis.errors import StoreUnavailable
from codeinsight.analysis.models import CODE_SUBMIT, AnalysisRecord, Suggestions
from codeinsight.storage.db import SCHEMA_VERSION, get_connection
from codeinsight.storage.repository import Repository

from conftest import NOW, make_event


def _make_record(**kwargs) -> AnalysisRecord:
    defaults = dict(
        user_id="alice",
        period_days=30,
        total_problems=6,
        total_runs=12,
        total_submits=4,
        unique_languages_count=1,
        most_used_language="python",
        problem_categories_json='{"Array": 6}',
        approach_rating=3.9,
        quality_score=4.0,
        problem_solving_style="Iterative problem solver.",
        strengths="Active coding practice",
        weaknesses="Need more diverse problem categories",
        suggestions=Suggestions(focus_areas=["Graphs"], next_steps=["Do more"], resources=["Book"]),
        ai_model_used="heuristic-fallback",
        analysis_confidence=0.65,
    )
    defaults.update(kwargs)
    return AnalysisRecord(**defaults)


class TestDatabase:
    def test_creates_tables(self, db_conn: sqlite3.Connection):
        tables = db_conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        ).fetchall()
        table_names = {row["name"] for row in tables}
        assert "coding_events" in table_names
        assert "analysis_results" in table_names

    def test_wal_mode(self, db_conn: sqlite3.Connection):
        mode = db_conn.execute("PRAGMA journal_mode").fetchone()[0]
        assert mode == "wal"

    def test_schema_version(self, db_conn: sqlite3.Connection):
        assert db_conn.execute("PRAGMA user_version").fetchone()[0] == SCHEMA_VERSION

    def test_idempotent_schema(self, db_path: Path):
        conn1 = get_connection(db_path)
        conn1.close()
        conn2 = get_connection(db_path)
        tables = conn2.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ).fetchall()
        conn2.close()
        assert len(tables) > 0


class TestEvents:
    def test_save_and_find(self, repo: Repository):
        event_id = repo.save_event(make_event(problem_title="Clone Graph"))
        events = repo.find_coding_events("alice", NOW - timedelta(days=1))
        assert len(events) == 1
        assert events[0].id == event_id
        assert events[0].problem_title == "Clone Graph"
        assert events[0].timestamp == NOW

    def test_save_events_count(self, repo: Repository, scenario_b_events):
        assert repo.save_events(scenario_b_events) == 16

    def test_filters_by_user_type_and_window(self, repo: Repository):
        repo.save_events([
            make_event(minutes_ago=5),
            make_event(CODE_SUBMIT, minutes_ago=10),
            make_event("PAGE_VIEW", minutes_ago=1),
            make_event(user_id="bob"),
            make_event(minutes_ago=60 * 24 * 3),
        ])
        events = repo.find_coding_events("alice", NOW - timedelta(days=1))
        assert [e.event_type for e in events] == ["CODE_RUN", "CODE_SUBMIT"]

    def test_aware_timestamp_stored_as_local_time(self, repo: Repository):
        aware = NOW.replace(tzinfo=timezone.utc)
        repo.save_events([replace(make_event(), timestamp=aware), make_event(minutes_ago=5)])
        events = repo.find_coding_events("alice", aware - timedelta(days=1))
        assert len(events) == 2
        assert all(e.timestamp.tzinfo is None for e in events)
        assert aware.astimezone().replace(tzinfo=None) in [e.timestamp for e in events]

    def test_newest_first(self, repo: Repository):
        repo.save_events([make_event(minutes_ago=30), make_event(minutes_ago=1)])
        events = repo.find_coding_events("alice", NOW - timedelta(days=1))
        assert events[0].timestamp > events[1].timestamp


class TestAnalyses:
    def test_save_assigns_id_and_timestamps(self, repo: Repository):
        record = _make_record()
        saved = repo.save(record)
        assert saved.id is not None
        assert saved.created_at is not None
        assert record.id is None

    def test_round_trip(self, repo: Repository):
        saved = repo.save(_make_record(ai_fields=["quality_score"], insights_text="text"))
        loaded = repo.get_latest_analysis("alice")
        assert loaded.id == saved.id
        assert loaded.approach_rating == 3.9
        assert loaded.suggestions == saved.suggestions
        assert loaded.problem_categories == {"Array": 6}
        assert loaded.ai_fields == ["quality_score"]
        assert loaded.insights_text == "text"
        assert loaded.analysis_date == date.today()

    def test_history_most_recent_first(self, repo: Repository):
        older = repo.save(_make_record(analysis_date=date.today() - timedelta(days=3)))
        newer = repo.save(_make_record())
        repo.save(_make_record(user_id="bob"))
        history = repo.get_analyses("alice")
        assert [r.id for r in history] == [newer.id, older.id]

    def test_history_limit(self, repo: Repository):
        for _ in range(3):
            repo.save(_make_record())
        assert len(repo.get_analyses("alice", limit=2)) == 2

    def test_latest_none(self, repo: Repository):
        assert repo.get_latest_analysis("nobody") is None

    def test_corrupt_suggestions_json(self, repo: Repository, db_conn: sqlite3.Connection):
        saved = repo.save(_make_record())
        db_conn.execute(
            "UPDATE analysis_results SET improvement_suggestions = ? WHERE id = ?",
            ("{broken", saved.id),
        )
        db_conn.commit()
        assert repo.get_latest_analysis("alice").suggestions == Suggestions()


class TestStats:
    def test_empty(self, repo: Repository):
        stats = repo.get_stats()
        assert stats == {
            "total_events": 0,
            "total_users": 0,
            "total_analyses": 0,
            "ai_analyses": 0,
            "heuristic_analyses": 0,
        }

    def test_counts(self, repo: Repository, scenario_b_events):
        repo.save_events(scenario_b_events)
        repo.save_event(make_event(user_id="bob"))
        repo.save(_make_record())
        repo.save(_make_record(ai_model_used="ai-provider", analysis_confidence=0.9))
        stats = repo.get_stats()
        assert stats["total_events"] == 17
        assert stats["total_users"] == 2
        assert stats["total_analyses"] == 2
        assert stats["ai_analyses"] == 1
        assert stats["heuristic_analyses"] == 1

    def test_user_stats(self, repo: Repository):
        repo.save(_make_record(approach_rating=3.0, quality_score=4.0))
        repo.save(_make_record(approach_rating=4.0, quality_score=5.0))
        stats = repo.get_user_stats("alice")
        assert stats["analysis_count"] == 2
        assert stats["avg_approach_rating"] == pytest.approx(3.5)
        assert stats["avg_quality_score"] == pytest.approx(4.5)


class TestFailures:
    def test_closed_connection_raises_store_unavailable(self, db_path: Path):
        repo = Repository(get_connection(db_path))
        repo.close()
        with pytest.raises(StoreUnavailable):
            repo.find_coding_events("alice", NOW)
        with pytest.raises(StoreUnavailable):
            repo.save(_make_record())
