"""Reconciliation of AI analysis text with the heuristic report.

Each structured field is pulled from the AI text when it can be found and
falls back to the heuristic value otherwise. Extraction runs in two stages:

1. Structured: the text is a JSON object (possibly code-fenced) following
   the schema requested in the prompt.
2. Keyword scan: the text is markdown prose; ratings are found by keyword
   and number on the same line, narrative fields by section header.

Scalar fields fall back one at a time. Suggestions fall back as a whole:
either every suggestion list comes from the AI text or none does.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field

from codeinsight.analysis import heuristics
from codeinsight.analysis.errors import ParseAmbiguity
from codeinsight.analysis.models import HeuristicReport, Suggestions, TIMELINE, UserCodingProfile

logger = logging.getLogger(__name__)

AI_MODEL = "ai-provider"
HEURISTIC_MODEL = "heuristic-fallback"
AI_CONFIDENCE = 0.90
HEURISTIC_CONFIDENCE = 0.65

# A 1-5 score with at most one decimal, not part of a longer number or a "/5"
_SCORE_RE = re.compile(r"(?<![\w./-])([1-5](?:\.\d)?)(?![\w]|\.\d)")
_RANGE_RE = re.compile(r"\(?\b[1-5]\s*[-–]\s*[1-5]\b\)?")
_ENUMERATOR_RE = re.compile(r"^\s*\d+[.)]\s+")
_HEADER_RE = re.compile(r"^\s*(?:#+\s*)?(?:\d+[.)]\s*)?\*\*")
_BULLET_RE = re.compile(r"^\s*[•\-*]\s*")

STYLE_HEADERS = ("Problem-Solving Style",)
STRENGTHS_HEADERS = ("Strengths",)
WEAKNESSES_HEADERS = ("Areas for Improvement", "Weaknesses")
RECOMMENDATIONS_HEADER = "Recommendations"
RECOMMENDATION_MARKERS = ("Recommendations", "improvement")


@dataclass
class Reconciliation:
    approach_rating: float
    quality_score: float
    problem_solving_style: str
    strengths: str
    weaknesses: str
    suggestions: Suggestions
    ai_model_used: str
    analysis_confidence: float
    ai_fields: list[str] = field(default_factory=list)


def reconcile(
    profile: UserCodingProfile,
    ai_text: str | None,
    heuristic: HeuristicReport | None = None,
) -> Reconciliation:
    """Combine optional AI text with heuristics into the final report fields."""
    heuristic = heuristic or heuristics.analyze(profile)

    if not ai_text or not ai_text.strip():
        return Reconciliation(
            approach_rating=heuristic.approach_rating,
            quality_score=heuristic.quality_score,
            problem_solving_style=heuristic.problem_solving_style,
            strengths=heuristic.strengths,
            weaknesses=heuristic.weaknesses,
            suggestions=heuristic.suggestions,
            ai_model_used=HEURISTIC_MODEL,
            analysis_confidence=HEURISTIC_CONFIDENCE,
        )

    data = parse_structured(ai_text)
    if data is not None:
        extractor = _StructuredExtractor(data)
    else:
        extractor = _KeywordExtractor(ai_text)

    ai_fields: list[str] = []

    def pick(name: str, extract, fallback):
        try:
            value = extract()
        except ParseAmbiguity as e:
            logger.debug(f"Falling back to heuristic {name}: {e}")
            return fallback
        ai_fields.append(name)
        return value

    # Every field is attempted, in a fixed order, so ai_fields is stable
    result = Reconciliation(
        approach_rating=pick("approach_rating", extractor.approach_rating, heuristic.approach_rating),
        quality_score=pick("quality_score", extractor.quality_score, heuristic.quality_score),
        problem_solving_style=pick(
            "problem_solving_style", extractor.problem_solving_style, heuristic.problem_solving_style
        ),
        strengths=pick("strengths", extractor.strengths, heuristic.strengths),
        weaknesses=pick("weaknesses", extractor.weaknesses, heuristic.weaknesses),
        suggestions=pick("suggestions", extractor.suggestions, heuristic.suggestions),
        ai_model_used=AI_MODEL,
        analysis_confidence=AI_CONFIDENCE,
    )
    result.ai_fields = ai_fields
    logger.info(f"Reconciled AI analysis: {len(ai_fields)}/6 fields taken from AI text")
    return result


def parse_structured(text: str) -> dict | None:
    """Parse a JSON object answer, tolerating markdown code fences."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


# ---------------------------------------------------------------------------
# Structured (JSON) extraction
# ---------------------------------------------------------------------------


class _StructuredExtractor:
    def __init__(self, data: dict) -> None:
        self._data = data

    def approach_rating(self) -> float:
        return self._rating("approach_rating")

    def quality_score(self) -> float:
        return self._rating("quality_score")

    def problem_solving_style(self) -> str:
        return self._text("problem_solving_style")

    def strengths(self) -> str:
        return self._text("strengths")

    def weaknesses(self) -> str:
        return self._text("weaknesses")

    def suggestions(self) -> Suggestions:
        recommendations = self._string_list("recommendations")
        try:
            learning_path = self._string_list("learning_path")
        except ParseAmbiguity:
            learning_path = []
        return Suggestions(
            focus_areas=recommendations,
            next_steps=list(recommendations),
            resources=learning_path,
            timeline=TIMELINE,
        )

    def _rating(self, key: str) -> float:
        value = self._data.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ParseAmbiguity(f"{key} missing or not a number")
        try:
            rating = float(value)
        except ValueError:
            raise ParseAmbiguity(f"{key} is not a number: {value!r}") from None
        if not 1.0 <= rating <= 5.0:
            raise ParseAmbiguity(f"{key} out of range: {rating}")
        return round(rating, 1)

    def _text(self, key: str) -> str:
        value = self._data.get(key)
        if isinstance(value, list):
            value = ", ".join(str(v).strip() for v in value if str(v).strip())
        if not isinstance(value, str) or not value.strip():
            raise ParseAmbiguity(f"{key} missing or empty")
        return " ".join(value.split())

    def _string_list(self, key: str) -> list[str]:
        value = self._data.get(key)
        if not isinstance(value, list):
            raise ParseAmbiguity(f"{key} missing or not a list")
        items = [str(v).strip() for v in value if str(v).strip()]
        if not items:
            raise ParseAmbiguity(f"{key} is empty")
        return items


# ---------------------------------------------------------------------------
# Keyword (markdown prose) extraction
# ---------------------------------------------------------------------------


class _KeywordExtractor:
    def __init__(self, text: str) -> None:
        self._text = text
        self._lines = text.splitlines()

    def approach_rating(self) -> float:
        return extract_rating(self._lines, "rating")

    def quality_score(self) -> float:
        return extract_rating(self._lines, "quality")

    def problem_solving_style(self) -> str:
        return self._section(STYLE_HEADERS)

    def strengths(self) -> str:
        return self._section(STRENGTHS_HEADERS)

    def weaknesses(self) -> str:
        return self._section(WEAKNESSES_HEADERS)

    def suggestions(self) -> Suggestions:
        if not any(marker in self._text for marker in RECOMMENDATION_MARKERS):
            raise ParseAmbiguity("no recommendations marker")
        lines = section_lines(self._lines, RECOMMENDATIONS_HEADER)
        items = [
            _BULLET_RE.sub("", line).strip()
            for line in lines
            if _BULLET_RE.match(line)
        ]
        items = [item for item in items if item]
        if not items:
            raise ParseAmbiguity("no bullet points under recommendations")
        return Suggestions(
            focus_areas=items,
            next_steps=list(items),
            resources=[],
            timeline=TIMELINE,
        )

    def _section(self, headers: tuple[str, ...]) -> str:
        for header in headers:
            if header not in self._text:
                continue
            text = " ".join(line.strip() for line in section_lines(self._lines, header))
            if text:
                return text
        raise ParseAmbiguity(f"no usable section for {headers[0]!r}")


def extract_rating(lines: list[str], keyword: str) -> float:
    """Return the first 1-5 score on a line mentioning keyword."""
    for line in lines:
        lower = line.lower()
        index = lower.find(keyword)
        if index == -1:
            continue
        after = _RANGE_RE.sub(" ", line[index + len(keyword):])
        match = _SCORE_RE.search(after)
        if match is None:
            whole = _RANGE_RE.sub(" ", _ENUMERATOR_RE.sub("", line))
            match = _SCORE_RE.search(whole)
        if match is not None:
            rating = float(match.group(1))
            if not 1.0 <= rating <= 5.0:
                raise ParseAmbiguity(f"{keyword} score out of range: {rating}")
            return rating
    raise ParseAmbiguity(f"no {keyword} score found")


def section_lines(lines: list[str], header: str) -> list[str]:
    """Non-blank lines of the section introduced by header.

    The section starts after the first line containing header (text after a
    colon on that line counts) and stops before the next bolded header line.
    """
    collected: list[str] = []
    in_section = False
    for line in lines:
        if not in_section:
            if header in line:
                in_section = True
                _, sep, rest = line.partition(":")
                rest = rest.strip().strip("*").strip()
                if sep and rest:
                    collected.append(rest)
            continue
        if _HEADER_RE.match(line) and header not in line:
            break
        if line.strip():
            collected.append(line.strip())
    return collected
