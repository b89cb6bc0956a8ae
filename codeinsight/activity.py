"""Activity logging for analysis runs.

Appends one JSON line per analysis run so operators can see which users were
analyzed, whether the language model answered, and how long it took. Each
line holds timestamp, user id, period, outcome status, model used,
confidence and duration.

The log file lives alongside codeinsight.db by default.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


def _resolve_log_path() -> Path:
    """Find the log file path, checking env var then defaulting next to the DB."""
    env_path = os.getenv("CODEINSIGHT_LOG_PATH")
    if env_path:
        return Path(env_path)

    db_path = os.getenv("CODEINSIGHT_DB_PATH", "codeinsight.db")
    return Path(db_path).parent / "codeinsight-activity.jsonl"


def log_analysis_run(
    user_id: str,
    period_days: int,
    status: str,
    ai_model_used: str | None,
    analysis_confidence: float | None,
    reason: str,
    duration_ms: int,
    log_path: Path | None = None,
) -> None:
    """Append an analysis run entry to the activity log. Never raises on I/O."""
    entry = {
        "timestamp": datetime.now().isoformat(),
        "user_id": user_id,
        "period_days": period_days,
        "status": status,
        "ai_model_used": ai_model_used,
        "analysis_confidence": analysis_confidence,
        "reason": reason or None,
        "duration_ms": duration_ms,
    }
    path = log_path or _resolve_log_path()
    try:
        with open(path, "a") as f:
            f.write(json.dumps(entry, default=str) + "\n")
    except OSError as e:
        logger.warning(f"Could not write activity log {path}: {e}")


def read_activity_log(
    limit: int = 20,
    status: str | None = None,
    log_path: Path | None = None,
) -> list[dict]:
    """Read recent activity log entries.

    Returns entries in reverse chronological order (most recent first).
    """
    path = log_path or _resolve_log_path()
    if not path.exists():
        return []

    entries: list[dict] = []
    for line in path.read_text().splitlines():
        if not line.strip():
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue

        if status and entry.get("status") != status:
            continue

        entries.append(entry)

    entries.reverse()
    return entries[:limit]
