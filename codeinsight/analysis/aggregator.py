"""Event aggregation: raw coding events → UserCodingProfile.

Reduces a user's CODE_RUN / CODE_SUBMIT events over a time window into the
counts, language usage, problem categories and code samples that both the
heuristic analyzer and the AI prompt are built from.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Protocol

from codeinsight.analysis.models import CODING_EVENT_TYPES, CODE_RUN, CODE_SUBMIT, CodingEvent, UserCodingProfile

logger = logging.getLogger(__name__)

MAX_CODE_SAMPLES = 5
MIN_SAMPLE_LENGTH = 50
MAX_SAMPLE_CHARS = 1000

# Checked in order, first match wins
CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("Array", ("array", "list")),
    ("String", ("string",)),
    ("Tree", ("tree", "binary")),
    ("Graph", ("graph", "bfs", "dfs")),
    ("Dynamic Programming", ("dynamic", "dp")),
    ("Sorting", ("sort",)),
    ("Hash Table", ("hash", "map")),
]
OTHER_CATEGORY = "Other"


class EventStore(Protocol):
    def find_coding_events(self, user_id: str, since: datetime) -> list[CodingEvent]: ...


def categorize_title(title: str) -> str:
    """Map a problem title to one of the eight problem categories."""
    title_lower = title.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in title_lower for keyword in keywords):
            return category
    return OTHER_CATEGORY


def format_code_sample(event: CodingEvent) -> str:
    code = event.source_code or ""
    if len(code) > MAX_SAMPLE_CHARS:
        code = code[:MAX_SAMPLE_CHARS] + "..."
    title = event.problem_title if event.problem_title is not None else "Unknown Problem"
    language = event.language if event.language is not None else "unknown"
    return f"Problem: {title}\nLanguage: {language}\nCode:\n{code}\n---"


def build_profile(
    user_id: str, period_days: int, events: Iterable[CodingEvent]
) -> UserCodingProfile:
    """Reduce events into a profile. Non-coding event types are ignored."""
    coding = [e for e in events if e.event_type in CODING_EVENT_TYPES]

    language_counts = Counter(
        e.language for e in coding if e.language and e.language != "unknown"
    )
    most_used = language_counts.most_common(1)[0][0] if language_counts else "unknown"

    categories: Counter[str] = Counter()
    for event in coding:
        if event.problem_title is None:
            continue
        categories[categorize_title(event.problem_title)] += 1

    return UserCodingProfile(
        user_id=user_id,
        period_days=period_days,
        total_problems=len({e.problem_id for e in coding}),
        total_runs=sum(1 for e in coding if e.event_type == CODE_RUN),
        total_submits=sum(1 for e in coding if e.event_type == CODE_SUBMIT),
        languages_used=set(language_counts),
        most_used_language=most_used,
        problem_categories=dict(categories),
        recent_code_samples=_recent_code_samples(coding, MAX_CODE_SAMPLES),
    )


def _recent_code_samples(events: list[CodingEvent], limit: int) -> list[str]:
    with_code = [
        e for e in events if e.source_code and len(e.source_code) > MIN_SAMPLE_LENGTH
    ]
    with_code.sort(key=lambda e: e.timestamp, reverse=True)
    return [format_code_sample(e) for e in with_code[:limit]]


class EventAggregator:
    """Loads a user's events from the store and builds their profile."""

    def __init__(
        self,
        store: EventStore,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._clock = clock

    def aggregate(self, user_id: str, period_days: int) -> UserCodingProfile:
        since = self._clock() - timedelta(days=period_days)
        logger.info(f"Aggregating data for user {user_id} (last {period_days} days)")

        events = self._store.find_coding_events(user_id, since)
        logger.debug(f"Found {len(events)} coding events for user {user_id}")

        profile = build_profile(user_id, period_days, events)
        logger.info(
            f"Aggregated {profile.total_problems} problems, {profile.total_runs} runs, "
            f"{profile.total_submits} submits for user {user_id}"
        )
        return profile
