"""Data shapes shared by the quiz generator.

Article and CleaningResult come out of the content cleaner, Quiz and Question
out of the response parser. Quiz also doubles as the failure value returned by
the completion client, so callers never have to catch exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

OPTION_LETTERS = ("A", "B", "C", "D")
DIFFICULTIES = ("Easy", "Medium", "Hard")


class QuizErrorType(str, Enum):
    """Classification of quiz generation failures."""

    QUOTA_EXCEEDED = "quota_exceeded"  # No request was sent
    RATE_LIMITED = "rate_limited"  # 429 after all retries
    BAD_REQUEST = "bad_request"  # 400 after all retries
    TRANSPORT_ERROR = "transport_error"
    MALFORMED_RESPONSE = "malformed_response"
    UNEXPECTED_ERROR = "unexpected_error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Author:
    display_name: str | None = None
    id: str | None = None
    username: str | None = None


@dataclass(frozen=True)
class CleaningResult:
    """Output of a single HTML cleaning pass."""

    clean_text: str = ""
    original_length: int = 0
    cleaned_length: int = 0


@dataclass(frozen=True)
class Article:
    """An article ready for prompting.

    full_text is title, optional subtitle and clean_text joined by blank lines;
    token_estimate is len(full_text) // 4.
    """

    id: str
    title: str = ""
    subtitle: str | None = None
    html_body: str = ""
    post_number: int | None = None
    author: Author | None = None
    clean_text: str = ""
    full_text: str = ""
    original_length: int = 0
    cleaned_length: int = 0
    token_estimate: int = 0

    @property
    def author_display_name(self) -> str | None:
        return self.author.display_name if self.author else None

    @property
    def full_title(self) -> str:
        if self.subtitle:
            return f"{self.title}: {self.subtitle}"
        return self.title


@dataclass
class Question:
    """A single multiple-choice question."""

    id: int
    question: str
    options: dict[str, str]
    correct_answer: str
    explanation: str = ""
    difficulty: str = "Easy"

    def option(self, letter: str) -> str | None:
        return self.options.get(letter.upper())

    def is_correct(self, answer: str | None) -> bool:
        return answer is not None and self.correct_answer.upper() == answer.strip().upper()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "options": {letter: self.options[letter] for letter in OPTION_LETTERS},
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
            "difficulty": self.difficulty,
        }


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. 2025-01-31T09:15:02.123Z."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


@dataclass
class Quiz:
    """A generated quiz, or a failed attempt to generate one."""

    quiz_title: str | None = None
    article_id: str | None = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    model_used: str | None = None
    token_estimate: int | None = None
    questions: list[Question] = field(default_factory=list)
    success: bool = True
    error_message: str | None = None
    error_type: QuizErrorType | None = None
    api_provider: str = "Groq"

    @classmethod
    def failure(
        cls,
        error_type: QuizErrorType,
        message: str,
        article_id: str | None = None,
        model_used: str | None = None,
    ) -> Quiz:
        """Build a failed quiz. Failed quizzes never carry questions."""
        return cls(
            article_id=article_id,
            model_used=model_used,
            success=False,
            error_message=message,
            error_type=error_type,
        )

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def difficulty_breakdown(self) -> dict[str, int]:
        counts = {difficulty: 0 for difficulty in DIFFICULTIES}
        for q in self.questions:
            counts[q.difficulty] = counts.get(q.difficulty, 0) + 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        """Outbound quiz document."""
        return {
            "quiz_title": self.quiz_title,
            "article_id": self.article_id,
            "generated_at": format_timestamp(self.generated_at),
            "model_used": self.model_used,
            "token_estimate": self.token_estimate,
            "questions": [q.to_dict() for q in self.questions],
        }
