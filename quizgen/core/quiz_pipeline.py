"""Quiz Pipeline - Orchestrates one article from JSON file to saved quiz.

Pipeline Phases:
1. LOAD: Read article JSON, clean the HTML body, write the cleaned-text artifact
2. GENERATE: Ask the completion client for a 20-question quiz
3. SAVE: Write the quiz document to the output directory
4. CLEANUP: Remove the cleaned-text artifact and report usage

Usage:
    settings = Settings.from_env()
    result = await run_quiz_pipeline(settings)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from quizgen.core.content_cleaner import load_article
from quizgen.core.errors import InvalidArticleError
from quizgen.core.llm_providers import GroqCompletionClient, get_completion_client
from quizgen.core.models import Article, Quiz
from quizgen.core.prompts import DIFFICULTY_SPLIT, QUESTION_COUNT
from quizgen.core.settings import Settings

logger = logging.getLogger(__name__)

QUESTION_PREVIEW_LENGTH = 100


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""

    success: bool
    article: Article | None = None
    quiz: Quiz | None = None
    output_path: Path | None = None
    usage: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "article_id": self.article.id if self.article else None,
            "output_path": str(self.output_path) if self.output_path else None,
            "question_count": self.quiz.question_count if self.quiz else 0,
            "usage": self.usage,
            "error": self.error,
        }


def quiz_filename(quiz: Quiz) -> str:
    return f"quiz_{quiz.article_id or 'unknown'}_groq.json"


def save_quiz(quiz: Quiz, output_dir: str | Path) -> Path:
    """Write the quiz document as pretty-printed JSON and return its path."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    path = output_dir / quiz_filename(quiz)
    path.write_text(json.dumps(quiz.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info(f"Quiz saved to: {path}")
    return path


def save_cleaned_text(article: Article, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(article.full_text, encoding="utf-8")
    logger.info(f"Article cleaned and saved to: {path}")
    return path


def cleanup_temp_file(path: str | Path) -> bool:
    """Delete an intermediate file. Returns True if a file was removed."""
    path = Path(path)
    if not path.exists():
        return False
    try:
        path.unlink()
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")
        return False
    logger.info(f"Cleaned up temporary file: {path}")
    return True


def _log_sample_question(quiz: Quiz) -> None:
    first = quiz.questions[0]
    text = first.question
    preview = text[:QUESTION_PREVIEW_LENGTH] + ("..." if len(text) > QUESTION_PREVIEW_LENGTH else "")
    logger.info(
        f"Sample question: {preview} "
        f"(difficulty: {first.difficulty}, correct: {first.correct_answer})"
    )


def _log_breakdown(quiz: Quiz) -> None:
    breakdown = quiz.difficulty_breakdown()
    summary = ", ".join(
        f"{difficulty}: {breakdown.get(difficulty, 0)}/{expected}"
        for difficulty, expected in DIFFICULTY_SPLIT.items()
    )
    logger.info(f"Difficulty breakdown: {summary}")

    if quiz.question_count != QUESTION_COUNT:
        logger.warning(f"Expected {QUESTION_COUNT} questions, got {quiz.question_count}")


async def run_quiz_pipeline(
    settings: Settings,
    client: GroqCompletionClient | None = None,
) -> PipelineResult:
    """Run the full pipeline for the article at settings.input_path.

    Args:
        settings: Paths, retry budget and API configuration.
        client: Completion client; created from settings when omitted.

    Returns:
        PipelineResult. Failures are reported in result.error, never raised.
    """
    client = client or get_completion_client(settings)

    # Phase 1: LOAD
    input_path = Path(settings.input_path)
    if not input_path.exists():
        logger.error(f"Input file not found: {input_path.resolve()}")
        return PipelineResult(
            success=False,
            usage=client.usage(),
            error=f"Input file not found: {input_path}",
        )

    try:
        article = load_article(input_path)
    except InvalidArticleError as e:
        logger.error(f"Failed to process article: {e}")
        return PipelineResult(success=False, usage=client.usage(), error=str(e))

    try:
        save_cleaned_text(article, settings.cleaned_path)
    except OSError as e:
        logger.error(f"Failed to write cleaned text: {e}")
        return PipelineResult(success=False, article=article, usage=client.usage(), error=str(e))

    # Phase 2: GENERATE
    logger.info(
        f"Generating {QUESTION_COUNT}-question quiz "
        f"(~{article.token_estimate:,} estimated tokens)"
    )
    quiz = await client.generate_quiz(article, settings.max_retries)

    if not quiz.success:
        logger.error(f"Quiz generation failed: {quiz.error_message}")
        return PipelineResult(
            success=False,
            article=article,
            quiz=quiz,
            usage=client.usage(),
            error=quiz.error_message,
        )

    if not quiz.questions:
        logger.error("No questions generated")
        return PipelineResult(
            success=False,
            article=article,
            quiz=quiz,
            usage=client.usage(),
            error="No questions generated",
        )

    logger.info(f"Generated {quiz.question_count} questions with {quiz.model_used}")
    _log_sample_question(quiz)

    # Phase 3: SAVE
    try:
        output_path = save_quiz(quiz, settings.output_dir)
    except OSError as e:
        logger.error(f"Failed to save quiz: {e}")
        return PipelineResult(
            success=False,
            article=article,
            quiz=quiz,
            usage=client.usage(),
            error=f"Failed to save quiz: {e}",
        )

    _log_breakdown(quiz)

    # Phase 4: CLEANUP
    cleanup_temp_file(settings.cleaned_path)

    usage = client.usage()
    logger.info(
        f"API usage today: {usage['requests_today']}/{usage['daily_limit']} "
        f"({usage['remaining']} remaining, provider {usage['provider']})"
    )
    logger.info(
        f"Input: {article.original_length:,} chars, cleaned: {article.cleaned_length:,} chars"
    )

    return PipelineResult(
        success=True,
        article=article,
        quiz=quiz,
        output_path=output_path,
        usage=usage,
    )
