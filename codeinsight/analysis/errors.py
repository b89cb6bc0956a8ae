"""Exception types raised across the analysis engine.

Only ValidationError, InsufficientData and StoreUnavailable ever reach a
caller (as a rejected or failed outcome). AiUnavailable and ParseAmbiguity
are absorbed inside the engine.
"""

from __future__ import annotations


class CodeInsightError(Exception):
    """Base class for codeinsight errors."""


class ValidationError(CodeInsightError):
    """Bad user id or analysis period."""


class InsufficientData(CodeInsightError):
    """No coding activity in the requested window."""


class AiUnavailable(CodeInsightError):
    """The language model could not produce usable text."""


class StoreUnavailable(CodeInsightError):
    """The event or analysis store failed."""


class ParseAmbiguity(CodeInsightError):
    """A field could not be extracted from AI text."""
