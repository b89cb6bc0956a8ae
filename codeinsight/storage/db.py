"""SQLite database setup and schema management."""

from __future__ import annotations

import sqlite3
from pathlib import Path

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS coding_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    event_type TEXT NOT NULL,
    problem_id TEXT,
    problem_title TEXT,
    problem_url TEXT,
    language TEXT,
    source_code TEXT,
    platform TEXT,
    session_id TEXT,
    created_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS analysis_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    analysis_date TEXT NOT NULL,
    analysis_period_days INTEGER,
    total_problems_attempted INTEGER,
    total_runs INTEGER,
    total_submits INTEGER,
    unique_languages_used INTEGER,
    most_used_language TEXT,
    problem_categories TEXT,
    initial_approach_rating REAL,
    code_quality_score REAL,
    problem_solving_style TEXT,
    strengths TEXT,
    weaknesses TEXT,
    improvement_suggestions TEXT,
    insights_text TEXT,
    ai_fields TEXT,
    ai_model_used TEXT,
    analysis_confidence REAL,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_events_user_created ON coding_events(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_analysis_user_date ON analysis_results(user_id, analysis_date);
CREATE INDEX IF NOT EXISTS idx_analysis_date ON analysis_results(analysis_date);
"""


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Create or open a SQLite database with the codeinsight schema."""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    conn.executescript(SCHEMA_SQL)
    conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")
    conn.commit()

    return conn
