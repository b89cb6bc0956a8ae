"""Configuration loading for codeinsight.

Config sources (in priority order):
1. Explicit arguments passed to Config(...)
2. Environment variables (ANTHROPIC_API_KEY, CODEINSIGHT_MODEL, etc.)
3. .env file in current directory
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DB_PATH = Path("codeinsight.db")
DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 1000
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT = 30.0  # seconds

# Values people leave in .env templates
PLACEHOLDER_KEYS = {"not-configured", "changeme", "your-api-key"}


@dataclass(frozen=True)
class Config:
    anthropic_api_key: str = ""
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    timeout: float = DEFAULT_TIMEOUT
    db_path: Path = DEFAULT_DB_PATH

    @classmethod
    def load(cls) -> Config:
        return cls(
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            model=os.getenv("CODEINSIGHT_MODEL", DEFAULT_MODEL),
            max_tokens=int(os.getenv("CODEINSIGHT_MAX_TOKENS", str(DEFAULT_MAX_TOKENS))),
            temperature=float(os.getenv("CODEINSIGHT_TEMPERATURE", str(DEFAULT_TEMPERATURE))),
            timeout=float(os.getenv("CODEINSIGHT_TIMEOUT", str(DEFAULT_TIMEOUT))),
            db_path=Path(os.getenv("CODEINSIGHT_DB_PATH", str(DEFAULT_DB_PATH))),
        )

    @property
    def ai_configured(self) -> bool:
        key = self.anthropic_api_key.strip()
        return bool(key) and key.lower() not in PLACEHOLDER_KEYS

    def validate(self) -> list[str]:
        """Return a list of config issues. AI issues are warnings, not fatal."""
        issues = []
        if not self.ai_configured:
            issues.append(
                "Anthropic API key not set (ANTHROPIC_API_KEY), using heuristic analysis only"
            )
        if self.max_tokens <= 0:
            issues.append("CODEINSIGHT_MAX_TOKENS must be positive")
        if not 0.0 <= self.temperature <= 1.0:
            issues.append("CODEINSIGHT_TEMPERATURE must be between 0 and 1")
        if self.timeout <= 0:
            issues.append("CODEINSIGHT_TIMEOUT must be positive")
        return issues
