"""Core data models for codeinsight."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta

CODE_RUN = "CODE_RUN"
CODE_SUBMIT = "CODE_SUBMIT"
CODING_EVENT_TYPES = (CODE_RUN, CODE_SUBMIT)

TIMELINE = "2-4 weeks for immediate improvements, 2-3 months for advanced skills"


def local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time. Naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def parse_timestamp(text: str) -> datetime:
    # fromisoformat only accepts a trailing "Z" from Python 3.11
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return local_naive(datetime.fromisoformat(text))


@dataclass(frozen=True)
class CodingEvent:
    user_id: str
    event_type: str  # "CODE_RUN" | "CODE_SUBMIT" | anything else is ignored
    problem_id: str | None
    problem_title: str | None
    language: str | None
    source_code: str | None
    timestamp: datetime
    id: int | None = None
    platform: str | None = None  # e.g. "leetcode"
    session_id: str | None = None
    problem_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> CodingEvent:
        timestamp = data.get("timestamp") or data.get("created_at")
        if isinstance(timestamp, str):
            timestamp = parse_timestamp(timestamp)
        elif isinstance(timestamp, datetime):
            timestamp = local_naive(timestamp)
        return cls(
            user_id=data["user_id"],
            event_type=data.get("event_type", ""),
            problem_id=data.get("problem_id"),
            problem_title=data.get("problem_title"),
            language=data.get("language"),
            source_code=data.get("source_code"),
            timestamp=timestamp or datetime.now(),
            id=data.get("id"),
            platform=data.get("platform"),
            session_id=data.get("session_id"),
            problem_url=data.get("problem_url"),
        )


@dataclass
class UserCodingProfile:
    user_id: str
    period_days: int
    total_problems: int = 0
    total_runs: int = 0
    total_submits: int = 0
    languages_used: set[str] = field(default_factory=set)
    most_used_language: str = "unknown"
    problem_categories: dict[str, int] = field(default_factory=dict)
    recent_code_samples: list[str] = field(default_factory=list)

    @property
    def has_activity(self) -> bool:
        return self.total_runs > 0 or self.total_submits > 0

    @property
    def run_to_submit_ratio(self) -> float:
        """Runs per submit, 0 when nothing was submitted."""
        if self.total_submits == 0:
            return 0.0
        return self.total_runs / self.total_submits

    @property
    def submit_ratio(self) -> float:
        """Submits per distinct problem, 0 when no problems were attempted."""
        if self.total_problems == 0:
            return 0.0
        return self.total_submits / self.total_problems


@dataclass
class Suggestions:
    focus_areas: list[str] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    timeline: str = TIMELINE

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, text: str) -> Suggestions:
        data = json.loads(text)
        return cls(
            focus_areas=list(data.get("focus_areas") or []),
            next_steps=list(data.get("next_steps") or []),
            resources=list(data.get("resources") or []),
            timeline=data.get("timeline") or TIMELINE,
        )


@dataclass
class HeuristicReport:
    approach_rating: float
    quality_score: float
    problem_solving_style: str
    strengths: str
    weaknesses: str
    suggestions: Suggestions


@dataclass
class AnalysisRecord:
    user_id: str
    period_days: int
    total_problems: int
    total_runs: int
    total_submits: int
    unique_languages_count: int
    most_used_language: str
    problem_categories_json: str
    approach_rating: float
    quality_score: float
    problem_solving_style: str
    strengths: str
    weaknesses: str
    suggestions: Suggestions
    ai_model_used: str
    analysis_confidence: float
    insights_text: str = ""  # Narrative the record was reconciled from
    ai_fields: list[str] = field(default_factory=list)  # Fields taken from AI text
    analysis_date: date = field(default_factory=date.today)
    id: int | None = None  # Assigned by the store
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def problem_categories(self) -> dict[str, int]:
        try:
            return json.loads(self.problem_categories_json or "{}")
        except json.JSONDecodeError:
            return {}

    @property
    def is_recent(self) -> bool:
        return self.analysis_date > date.today() - timedelta(days=7)

    @property
    def formatted_confidence(self) -> str:
        return f"{self.analysis_confidence * 100:.1f}%"

    @property
    def formatted_rating(self) -> str:
        return f"{self.approach_rating:.1f}/5.0"

    def to_dict(self) -> dict:
        d = asdict(self)
        d["analysis_date"] = self.analysis_date.isoformat()
        d["created_at"] = self.created_at.isoformat() if self.created_at else None
        d["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        d["problem_categories"] = self.problem_categories
        del d["problem_categories_json"]
        return d


@dataclass
class AnalysisOutcome:
    status: str  # "success" | "rejected" | "failed"
    record: AnalysisRecord | None = None
    summary: str = ""
    recommendations: list[str] = field(default_factory=list)
    reason: str = ""

    @classmethod
    def success(
        cls, record: AnalysisRecord, summary: str, recommendations: list[str]
    ) -> AnalysisOutcome:
        return cls(
            status="success",
            record=record,
            summary=summary,
            recommendations=recommendations,
        )

    @classmethod
    def rejected(cls, reason: str) -> AnalysisOutcome:
        return cls(status="rejected", reason=reason)

    @classmethod
    def failed(cls, reason: str) -> AnalysisOutcome:
        return cls(status="failed", reason=reason)

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> dict:
        if not self.ok:
            return {"status": "error", "outcome": self.status, "message": self.reason}
        return {
            "status": "success",
            "message": "Analysis completed successfully",
            "data": {
                "analysis_id": self.record.id,
                "summary": self.summary,
                "recommendations": self.recommendations,
                "scores": {
                    "initial_approach_rating": self.record.approach_rating,
                    "code_quality_score": self.record.quality_score,
                },
                "ai_model_used": self.record.ai_model_used,
                "analysis_confidence": self.record.analysis_confidence,
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)
