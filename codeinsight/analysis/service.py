"""Analysis orchestration: user id + period → persisted analysis outcome.

Runs the full workflow for one request: validate input, aggregate events,
ask the language model for insight (falling back to heuristics when it
can't answer), reconcile the fields, persist the record and map it to the
outward summary. Every outcome is returned, never raised.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Protocol

from codeinsight.analysis import heuristics
from codeinsight.analysis.aggregator import EventAggregator
from codeinsight.analysis.errors import AiUnavailable, InsufficientData, StoreUnavailable, ValidationError
from codeinsight.analysis.models import AnalysisOutcome, AnalysisRecord, UserCodingProfile
from codeinsight.analysis.provider import InsightProvider
from codeinsight.analysis.reconciler import Reconciliation, reconcile

logger = logging.getLogger(__name__)

MIN_PERIOD_DAYS = 1
MAX_PERIOD_DAYS = 365
SUMMARY_MAX_CHARS = 200
MIN_SUMMARY_PARAGRAPH = 50

EMPTY_SUMMARY = "Analysis completed with basic heuristic evaluation."
DEFAULT_SUMMARY = "Comprehensive coding pattern analysis completed based on your recent activity."
DEFAULT_RECOMMENDATIONS = ["Continue practicing regularly", "Focus on problem-solving patterns"]


class AnalysisStore(Protocol):
    def save(self, record: AnalysisRecord) -> AnalysisRecord: ...

    def get_analyses(self, user_id: str, limit: int = 10) -> list[AnalysisRecord]: ...

    def get_latest_analysis(self, user_id: str) -> AnalysisRecord | None: ...


class AnalysisService:
    """Runs coding pattern analyses for users."""

    def __init__(
        self,
        aggregator: EventAggregator,
        provider: InsightProvider | None,
        store: AnalysisStore,
    ) -> None:
        self._aggregator = aggregator
        self._provider = provider
        self._store = store

    def analyze(self, user_id: str, period_days: int) -> AnalysisOutcome:
        try:
            validate_request(user_id, period_days)
        except ValidationError as e:
            logger.warning(f"Rejected analysis request: {e}")
            return AnalysisOutcome.rejected(str(e))

        logger.info(f"Starting analysis for user {user_id} (period: {period_days} days)")

        try:
            profile = self._aggregator.aggregate(user_id, period_days)
            if not profile.has_activity:
                raise InsufficientData("No coding activity found for the specified period")
        except InsufficientData as e:
            logger.warning(f"No coding activity for user {user_id} in the last {period_days} days")
            return AnalysisOutcome.rejected(str(e))
        except StoreUnavailable as e:
            logger.error(f"Could not load events for user {user_id}: {e}")
            return AnalysisOutcome.failed(f"Analysis failed: {e}")

        ai_text = self._generate(profile)
        heuristic = heuristics.analyze(profile)
        reconciled = reconcile(profile, ai_text, heuristic)
        record = build_record(
            profile,
            reconciled,
            insights_text=ai_text or heuristics.render_narrative(profile),
        )

        try:
            saved = self._store.save(record)
        except StoreUnavailable as e:
            logger.error(f"Could not save analysis for user {user_id}: {e}")
            return AnalysisOutcome.failed(f"Analysis failed: {e}")

        logger.info(
            f"Analysis {saved.id} saved for user {user_id} "
            f"({saved.ai_model_used}, confidence {saved.analysis_confidence:.2f})"
        )
        return AnalysisOutcome.success(
            saved,
            summary=extract_summary(saved.problem_solving_style),
            recommendations=recommendations_for(saved),
        )

    def history(self, user_id: str, limit: int = 10) -> list[AnalysisRecord]:
        return self._store.get_analyses(user_id, limit=limit)

    def latest(self, user_id: str) -> AnalysisRecord | None:
        return self._store.get_latest_analysis(user_id)

    def _generate(self, profile: UserCodingProfile) -> str | None:
        """AI text for the profile, or None when the heuristic path must be used."""
        if self._provider is None:
            logger.info(f"No language model configured, using heuristics for {profile.user_id}")
            return None
        try:
            return self._provider.generate(profile)
        except AiUnavailable as e:
            logger.warning(f"AI analysis failed for user {profile.user_id}, using heuristic fallback: {e}")
        except Exception:
            logger.exception(f"Unexpected error from language model for user {profile.user_id}")
        return None


def validate_request(user_id: str | None, period_days: int) -> None:
    if user_id is None or not user_id.strip():
        raise ValidationError("User ID cannot be null or empty")
    if not MIN_PERIOD_DAYS <= period_days <= MAX_PERIOD_DAYS:
        raise ValidationError(
            f"Period days must be between {MIN_PERIOD_DAYS} and {MAX_PERIOD_DAYS}"
        )


def build_record(
    profile: UserCodingProfile, reconciled: Reconciliation, insights_text: str = ""
) -> AnalysisRecord:
    return AnalysisRecord(
        user_id=profile.user_id,
        period_days=profile.period_days,
        total_problems=profile.total_problems,
        total_runs=profile.total_runs,
        total_submits=profile.total_submits,
        unique_languages_count=len(profile.languages_used),
        most_used_language=profile.most_used_language,
        problem_categories_json=json.dumps(profile.problem_categories, sort_keys=True),
        approach_rating=reconciled.approach_rating,
        quality_score=reconciled.quality_score,
        problem_solving_style=reconciled.problem_solving_style,
        strengths=reconciled.strengths,
        weaknesses=reconciled.weaknesses,
        suggestions=reconciled.suggestions,
        ai_model_used=reconciled.ai_model_used,
        analysis_confidence=reconciled.analysis_confidence,
        insights_text=insights_text,
        ai_fields=list(reconciled.ai_fields),
    )


def extract_summary(full_analysis: str | None) -> str:
    """First meaningful paragraph of the analysis, at most 200 characters."""
    if not full_analysis or not full_analysis.strip():
        return EMPTY_SUMMARY

    for section in full_analysis.split("\n\n"):
        if len(section) > MIN_SUMMARY_PARAGRAPH and not section.startswith("#"):
            clean = re.sub(r"###?\s*", "", section.replace("**", "")).strip()
            if len(clean) > SUMMARY_MAX_CHARS:
                return clean[: SUMMARY_MAX_CHARS - 3] + "..."
            return clean

    return DEFAULT_SUMMARY


def recommendations_for(record: AnalysisRecord) -> list[str]:
    return parse_recommendations(record.suggestions.to_json())


def parse_recommendations(suggestions_json: str | None) -> list[str]:
    """Focus areas from a stored suggestions JSON blob, with a default."""
    if not suggestions_json or not suggestions_json.strip():
        return list(DEFAULT_RECOMMENDATIONS)
    try:
        data = json.loads(suggestions_json)
    except json.JSONDecodeError:
        logger.warning("Failed to parse recommendations JSON")
        return list(DEFAULT_RECOMMENDATIONS)

    focus_areas = data.get("focus_areas") if isinstance(data, dict) else None
    if isinstance(focus_areas, list) and focus_areas:
        return [str(item) for item in focus_areas]
    return list(DEFAULT_RECOMMENDATIONS)
