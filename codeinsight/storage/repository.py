"""CRUD operations for coding events and analysis results."""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager, suppress
from dataclasses import replace
from datetime import date, datetime

from codeinsight.analysis.errors import StoreUnavailable
from codeinsight.analysis.models import (
    CODING_EVENT_TYPES,
    AnalysisRecord,
    CodingEvent,
    Suggestions,
    local_naive,
)


class Repository:
    """Data access layer for the codeinsight SQLite database.

    Serves as both the event store read by the aggregator and the analysis
    store written by the orchestrator. sqlite3 errors surface as
    StoreUnavailable.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as e:
            with suppress(sqlite3.Error):
                self._conn.rollback()
            raise StoreUnavailable(f"Failed to {action}: {e}") from e

    # -- events --------------------------------------------------------------

    def save_event(self, event: CodingEvent) -> int:
        """Insert a coding event and return its row id."""
        with self._guard("save event"):
            cursor = self._insert_event(event)
            self._conn.commit()
        return cursor.lastrowid

    def save_events(self, events: Iterable[CodingEvent]) -> int:
        """Insert many events in one transaction. Returns the number inserted."""
        count = 0
        with self._guard("save events"):
            for event in events:
                self._insert_event(event)
                count += 1
            self._conn.commit()
        return count

    def _insert_event(self, event: CodingEvent) -> sqlite3.Cursor:
        return self._conn.execute(
            """INSERT INTO coding_events
            (id, user_id, event_type, problem_id, problem_title, problem_url,
             language, source_code, platform, session_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                event.id,
                event.user_id,
                event.event_type,
                event.problem_id,
                event.problem_title,
                event.problem_url,
                event.language,
                event.source_code,
                event.platform,
                event.session_id,
                local_naive(event.timestamp).isoformat(),
            ),
        )

    def find_coding_events(self, user_id: str, since: datetime) -> list[CodingEvent]:
        """Runs and submits for a user since a point in time, newest first."""
        placeholders = ", ".join("?" for _ in CODING_EVENT_TYPES)
        with self._guard("load coding events"):
            rows = self._conn.execute(
                f"""
                SELECT * FROM coding_events
                WHERE user_id = ?
                AND event_type IN ({placeholders})
                AND created_at >= ?
                ORDER BY created_at DESC
                """,
                (user_id, *CODING_EVENT_TYPES, local_naive(since).isoformat()),
            ).fetchall()
        return [self._row_to_event(row) for row in rows]

    def _row_to_event(self, row: sqlite3.Row) -> CodingEvent:
        return CodingEvent(
            id=row["id"],
            user_id=row["user_id"],
            event_type=row["event_type"],
            problem_id=row["problem_id"],
            problem_title=row["problem_title"],
            problem_url=row["problem_url"],
            language=row["language"],
            source_code=row["source_code"],
            platform=row["platform"],
            session_id=row["session_id"],
            timestamp=datetime.fromisoformat(row["created_at"]),
        )

    # -- analyses ------------------------------------------------------------

    def save(self, record: AnalysisRecord) -> AnalysisRecord:
        """Insert an analysis record. Returns a copy with id and timestamps set."""
        now = datetime.now()
        with self._guard("save analysis"):
            cursor = self._conn.execute(
                """INSERT INTO analysis_results
                (user_id, analysis_date, analysis_period_days, total_problems_attempted,
                 total_runs, total_submits, unique_languages_used, most_used_language,
                 problem_categories, initial_approach_rating, code_quality_score,
                 problem_solving_style, strengths, weaknesses, improvement_suggestions,
                 insights_text, ai_fields, ai_model_used, analysis_confidence,
                 created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.user_id,
                    record.analysis_date.isoformat(),
                    record.period_days,
                    record.total_problems,
                    record.total_runs,
                    record.total_submits,
                    record.unique_languages_count,
                    record.most_used_language,
                    record.problem_categories_json,
                    record.approach_rating,
                    record.quality_score,
                    record.problem_solving_style,
                    record.strengths,
                    record.weaknesses,
                    record.suggestions.to_json(),
                    record.insights_text,
                    json.dumps(record.ai_fields),
                    record.ai_model_used,
                    record.analysis_confidence,
                    now.isoformat(),
                    now.isoformat(),
                ),
            )
            self._conn.commit()
        return replace(record, id=cursor.lastrowid, created_at=now, updated_at=now)

    def get_analyses(self, user_id: str, limit: int = 10) -> list[AnalysisRecord]:
        """A user's analyses, most recent first."""
        with self._guard("load analyses"):
            rows = self._conn.execute(
                """
                SELECT * FROM analysis_results
                WHERE user_id = ?
                ORDER BY analysis_date DESC, id DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def get_latest_analysis(self, user_id: str) -> AnalysisRecord | None:
        analyses = self.get_analyses(user_id, limit=1)
        return analyses[0] if analyses else None

    def get_user_stats(self, user_id: str) -> dict:
        """Analysis count and average ratings for one user."""
        with self._guard("load user stats"):
            row = self._conn.execute(
                """
                SELECT COUNT(*) AS analysis_count,
                       AVG(initial_approach_rating) AS avg_approach_rating,
                       AVG(code_quality_score) AS avg_quality_score
                FROM analysis_results WHERE user_id = ?
                """,
                (user_id,),
            ).fetchone()
        return dict(row)

    def get_stats(self) -> dict:
        """Get summary statistics about the stored data."""
        with self._guard("load stats"):
            events_count = self._conn.execute("SELECT COUNT(*) FROM coding_events").fetchone()[0]
            users_count = self._conn.execute(
                "SELECT COUNT(DISTINCT user_id) FROM coding_events"
            ).fetchone()[0]
            analyses_count = self._conn.execute(
                "SELECT COUNT(*) FROM analysis_results"
            ).fetchone()[0]
            ai_analyses = self._conn.execute(
                "SELECT COUNT(*) FROM analysis_results WHERE ai_model_used = 'ai-provider'"
            ).fetchone()[0]

        return {
            "total_events": events_count,
            "total_users": users_count,
            "total_analyses": analyses_count,
            "ai_analyses": ai_analyses,
            "heuristic_analyses": analyses_count - ai_analyses,
        }

    def _row_to_record(self, row: sqlite3.Row) -> AnalysisRecord:
        d = dict(row)
        try:
            suggestions = Suggestions.from_json(d["improvement_suggestions"] or "{}")
        except json.JSONDecodeError:
            suggestions = Suggestions()
        try:
            ai_fields = json.loads(d["ai_fields"] or "[]")
        except json.JSONDecodeError:
            ai_fields = []

        return AnalysisRecord(
            id=d["id"],
            user_id=d["user_id"],
            analysis_date=date.fromisoformat(d["analysis_date"]),
            period_days=d["analysis_period_days"],
            total_problems=d["total_problems_attempted"],
            total_runs=d["total_runs"],
            total_submits=d["total_submits"],
            unique_languages_count=d["unique_languages_used"],
            most_used_language=d["most_used_language"],
            problem_categories_json=d["problem_categories"] or "{}",
            approach_rating=d["initial_approach_rating"],
            quality_score=d["code_quality_score"],
            problem_solving_style=d["problem_solving_style"] or "",
            strengths=d["strengths"] or "",
            weaknesses=d["weaknesses"] or "",
            suggestions=suggestions,
            insights_text=d["insights_text"] or "",
            ai_fields=ai_fields,
            ai_model_used=d["ai_model_used"],
            analysis_confidence=d["analysis_confidence"],
            created_at=datetime.fromisoformat(d["created_at"]),
            updated_at=datetime.fromisoformat(d["updated_at"]) if d["updated_at"] else None,
        )
