"""Recover a Quiz from raw model output.

Models are told to answer with bare JSON but often wrap it in a markdown fence
or a sentence of prose. Decoding happens in two steps: find and json.loads the
outermost object, then map it onto Quiz/Question, raising MalformedResponseError
for anything that does not fit.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any

from quizgen.core.errors import MalformedResponseError
from quizgen.core.models import DIFFICULTIES, OPTION_LETTERS, Question, Quiz

logger = logging.getLogger(__name__)

MARKDOWN_PATTERN = re.compile(r"```json\s*|\s*```")
JSON_PATTERN = re.compile(r"(\{.*\})", re.DOTALL)

SNIPPET_LENGTH = 100


def strip_markdown(text: str) -> str:
    """Remove code fence markers and surrounding whitespace."""
    return MARKDOWN_PATTERN.sub("", text).strip()


def find_json_object(text: str) -> str:
    """Return the largest {...} region of text.

    Raises:
        MalformedResponseError: If text contains no brace-delimited region.
    """
    match = JSON_PATTERN.search(text)
    if match:
        return match.group(1)

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]

    snippet = text[:SNIPPET_LENGTH]
    raise MalformedResponseError(f"No valid JSON found in response: {snippet}...", snippet=snippet)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)
    return datetime.now(timezone.utc)


def _require_text(raw: dict[str, Any], key: str, position: int) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise MalformedResponseError(f"Question {position} has no '{key}'")
    return value.strip()


def parse_question(raw: Any, position: int) -> Question:
    """Map one question object; position is its 1-based index in the array."""
    if not isinstance(raw, dict):
        raise MalformedResponseError(f"Question {position} is not an object")

    text = _require_text(raw, "question", position)

    options = raw.get("options")
    if not isinstance(options, dict):
        raise MalformedResponseError(f"Question {position} has no options object")
    options = {str(k).strip().upper(): v for k, v in options.items()}
    missing = [letter for letter in OPTION_LETTERS if letter not in options]
    if missing:
        raise MalformedResponseError(
            f"Question {position} is missing options {', '.join(missing)}"
        )

    answer = str(raw.get("correct_answer") or "").strip().upper()
    if answer not in OPTION_LETTERS:
        raise MalformedResponseError(
            f"Question {position} has invalid correct_answer {raw.get('correct_answer')!r}"
        )

    difficulty = str(raw.get("difficulty") or "").strip().capitalize()
    if difficulty not in DIFFICULTIES:
        raise MalformedResponseError(
            f"Question {position} has invalid difficulty {raw.get('difficulty')!r}"
        )

    question_id = raw.get("id")
    if not isinstance(question_id, int) or isinstance(question_id, bool):
        question_id = position

    return Question(
        id=question_id,
        question=text,
        options={letter: str(options[letter]) for letter in OPTION_LETTERS},
        correct_answer=answer,
        explanation=str(raw.get("explanation") or ""),
        difficulty=difficulty,
    )


def quiz_from_dict(data: dict[str, Any]) -> Quiz:
    """Map a decoded quiz object onto Quiz. Unknown fields are ignored."""
    raw_questions = data.get("questions")
    if not isinstance(raw_questions, list):
        raise MalformedResponseError("Response has no 'questions' array")

    questions = [parse_question(raw, i) for i, raw in enumerate(raw_questions, start=1)]

    article_id = data.get("article_id")
    return Quiz(
        quiz_title=_str_or_none(data.get("quiz_title")),
        article_id=str(article_id) if article_id is not None else None,
        generated_at=_parse_timestamp(data.get("generated_at")),
        questions=questions,
    )


def _str_or_none(value: Any) -> str | None:
    return str(value) if value is not None else None


def extract_quiz(raw_text: str, fallback_model: str, token_estimate: int | None) -> Quiz:
    """Recover a Quiz from a completion string.

    model_used and token_estimate are always taken from the caller, never from
    the model output.

    Raises:
        MalformedResponseError: If no JSON object can be recovered or its shape
            does not match the quiz schema.
    """
    text = strip_markdown(raw_text or "")
    candidate = find_json_object(text)

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        snippet = candidate[:SNIPPET_LENGTH]
        raise MalformedResponseError(
            f"Invalid JSON in response ({e.msg}): {snippet}...", snippet=snippet
        ) from e

    if not isinstance(data, dict):
        raise MalformedResponseError(f"Response JSON is a {type(data).__name__}, not an object")

    quiz = quiz_from_dict(data)
    quiz.model_used = fallback_model
    quiz.token_estimate = token_estimate

    logger.debug(f"Parsed quiz with {quiz.question_count} questions")
    return quiz
