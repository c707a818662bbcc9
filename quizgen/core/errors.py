"""Exceptions raised inside the quiz generator.

The completion client catches all of these and turns them into failed Quiz
values; they only escape from the lower-level helpers (parser, article loader).
"""

from __future__ import annotations

from quizgen.core.models import QuizErrorType


class InvalidArticleError(ValueError):
    """Article JSON could not be read or has no id."""


class QuizGenerationError(Exception):
    """Error during quiz generation."""

    error_type = QuizErrorType.UNEXPECTED_ERROR

    def __init__(self, message: str, provider: str = "Groq", retriable: bool = False):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.retriable = retriable


class QuotaExceededError(QuizGenerationError):
    error_type = QuizErrorType.QUOTA_EXCEEDED


class RateLimitedError(QuizGenerationError):
    error_type = QuizErrorType.RATE_LIMITED


class BadRequestError(QuizGenerationError):
    error_type = QuizErrorType.BAD_REQUEST


class TransportError(QuizGenerationError):
    error_type = QuizErrorType.TRANSPORT_ERROR


class MalformedResponseError(QuizGenerationError):
    """No usable JSON object could be recovered from a completion."""

    error_type = QuizErrorType.MALFORMED_RESPONSE

    def __init__(self, message: str, snippet: str = "", provider: str = "Groq"):
        super().__init__(message, provider=provider, retriable=False)
        self.snippet = snippet
