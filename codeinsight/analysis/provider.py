"""AI insight generation using Claude.

Builds the coding pattern analysis prompt from a UserCodingProfile, sends it
to the language model and returns the raw text. Parsing the answer is the
reconciler's job; this module only decides whether usable text came back.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

import anthropic

from codeinsight.analysis.errors import AiUnavailable
from codeinsight.analysis.models import UserCodingProfile
from codeinsight.config import Config

logger = logging.getLogger(__name__)

MAX_RETRIES = 2
RETRY_BASE_DELAY = 1.0  # seconds
HEALTH_CHECK_MAX_TOKENS = 10

SYSTEM_PROMPT = (
    "You are an expert coding mentor and technical interviewer. Provide detailed, "
    "actionable insights about coding patterns and improvement recommendations."
)

ANALYSIS_PROMPT = """\
Analyze this developer's coding patterns and provide comprehensive insights.

## Coding Activity

- Problems attempted: {total_problems}
- Code executions: {total_runs}
- Successful submissions: {total_submits}
- Analysis period: {period_days} days
- Languages used: {languages}
- Most used language: {most_used_language}
- Problem categories: {categories}

## Recent Code Samples

{code_samples}

## Provide Detailed Analysis

1. **Problem-Solving Style**: Describe their approach (methodical, iterative, experimental, etc.)
2. **Initial Approach Rating** (1-5): Rate how well they plan before coding
3. **Code Quality Score** (1-5): Assess efficiency and best practices
4. **Key Strengths**: What they do well (3-4 specific strengths)
5. **Areas for Improvement**: Specific weaknesses to address (3-4 areas)
6. **Actionable Recommendations**: Concrete next steps for improvement
7. **Learning Path**: Suggested topics/resources for continued growth

Base every insight on the data patterns above and keep the feedback constructive.

## Instructions

Respond with a JSON object:
{{
  "problem_solving_style": "2-3 sentences",
  "approach_rating": 3.5,
  "quality_score": 4.0,
  "strengths": ["strength 1", "strength 2"],
  "weaknesses": ["area 1", "area 2"],
  "recommendations": ["concrete step 1", "concrete step 2"],
  "learning_path": ["topic or resource 1", "topic or resource 2"]
}}

Ratings are numbers between 1 and 5 with at most one decimal place.
If you cannot produce JSON, answer with one bolded markdown header per numbered \
item above (for example "**Code Quality Score**: 4.5/5") and bullet points \
under **Actionable Recommendations**.
"""


class LanguageModelClient(Protocol):
    def complete(
        self, prompt: str, max_tokens: int, temperature: float, model: str
    ) -> str: ...


class AnthropicLanguageModel:
    """LanguageModelClient backed by the Anthropic Messages API.

    Transient failures (rate limits, connection drops, 5xx) are retried up to
    MAX_RETRIES times with exponential backoff. Timeouts and other API errors
    fail immediately.
    """

    def __init__(self, client: anthropic.Anthropic, system: str = SYSTEM_PROMPT) -> None:
        self._client = client
        self._system = system

    @classmethod
    def from_config(cls, config: Config) -> AnthropicLanguageModel:
        client = anthropic.Anthropic(
            api_key=config.anthropic_api_key,
            timeout=config.timeout,
            max_retries=0,  # Retries are handled in complete()
        )
        return cls(client)

    def complete(
        self, prompt: str, max_tokens: int, temperature: float, model: str
    ) -> str:
        for attempt in range(MAX_RETRIES + 1):
            try:
                response = self._client.messages.create(
                    model=model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=self._system,
                    messages=[{"role": "user", "content": prompt}],
                )
                break
            except anthropic.APITimeoutError as e:
                raise AiUnavailable(f"Language model call timed out: {e}") from e
            except (
                anthropic.RateLimitError,
                anthropic.InternalServerError,
                anthropic.APIConnectionError,
            ) as e:
                if attempt < MAX_RETRIES:
                    delay = RETRY_BASE_DELAY * (2**attempt)
                    logger.warning(f"Transient API error ({e}), retrying in {delay}s...")
                    time.sleep(delay)
                else:
                    raise AiUnavailable(
                        f"Language model unavailable after {MAX_RETRIES} retries: {e}"
                    ) from e
            except anthropic.APIError as e:
                raise AiUnavailable(f"Language model API error: {e}") from e

        if not response.content:
            raise AiUnavailable("Empty response from language model")
        return "".join(
            getattr(block, "text", "") for block in response.content
        ).strip()


class InsightProvider:
    """Produces raw narrative analysis text for a profile."""

    def __init__(self, client: LanguageModelClient | None, config: Config) -> None:
        self._client = client
        self._config = config

    @property
    def configured(self) -> bool:
        return self._client is not None and self._config.ai_configured

    def generate(self, profile: UserCodingProfile) -> str:
        """Return the model's analysis text verbatim, or raise AiUnavailable."""
        if not self.configured:
            raise AiUnavailable("Language model API key not configured")

        prompt = build_prompt(profile)
        logger.info(f"Requesting AI analysis for user {profile.user_id}")
        logger.debug(f"Prompt preview: {prompt[:200]}...")

        try:
            text = self._client.complete(
                prompt,
                max_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
                model=self._config.model,
            )
        except AiUnavailable:
            raise
        except Exception as e:
            raise AiUnavailable(f"Language model client failed: {e}") from e
        if not text or not text.strip():
            raise AiUnavailable("Language model returned an empty response")

        logger.info(f"AI analysis received for user {profile.user_id}")
        return text

    def is_healthy(self) -> bool:
        """Quick probe that the key works and the API answers."""
        if not self.configured:
            logger.debug("Language model not configured")
            return False
        try:
            text = self._client.complete(
                "Hello, respond with 'OK'",
                max_tokens=HEALTH_CHECK_MAX_TOKENS,
                temperature=0.0,
                model=self._config.model,
            )
        except Exception as e:
            logger.debug(f"Language model health check failed: {e}")
            return False
        return bool(text and text.strip())


def build_prompt(profile: UserCodingProfile) -> str:
    return ANALYSIS_PROMPT.format(
        total_problems=profile.total_problems,
        total_runs=profile.total_runs,
        total_submits=profile.total_submits,
        period_days=profile.period_days,
        languages=", ".join(sorted(profile.languages_used)) or "(none recorded)",
        most_used_language=profile.most_used_language,
        categories=_format_categories(profile.problem_categories),
        code_samples=_format_samples(profile.recent_code_samples),
    )


def _format_categories(categories: dict[str, int]) -> str:
    if not categories:
        return "(none recorded)"
    ordered = sorted(categories.items(), key=lambda kv: (-kv[1], kv[0]))
    return ", ".join(f"{name}: {count}" for name, count in ordered)


def _format_samples(samples: list[str]) -> str:
    if not samples:
        return "(no code samples)"
    return "\n\n".join(samples)
