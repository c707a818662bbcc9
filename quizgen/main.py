from __future__ import annotations

import logging
from typing import Any

from fastapi import Body, FastAPI
from fastapi.responses import JSONResponse

from quizgen.core.content_cleaner import clean_html, extract_article
from quizgen.core.errors import InvalidArticleError
from quizgen.core.llm_providers import (
    GROQ_CHAT_MODELS,
    GroqCompletionClient,
    get_completion_client,
)
from quizgen.core.models import QuizErrorType
from quizgen.core.settings import Settings

logger = logging.getLogger(__name__)

app = FastAPI(title="quizgen")

# Quota and model rotation are per API key, so the whole process shares one client
_client: GroqCompletionClient | None = None

ERROR_STATUS: dict[QuizErrorType, int] = {
    QuizErrorType.QUOTA_EXCEEDED: 429,
    QuizErrorType.RATE_LIMITED: 429,
    QuizErrorType.BAD_REQUEST: 502,
    QuizErrorType.TRANSPORT_ERROR: 502,
    QuizErrorType.MALFORMED_RESPONSE: 502,
    QuizErrorType.CANCELLED: 503,
    QuizErrorType.UNEXPECTED_ERROR: 500,
}


def get_client() -> GroqCompletionClient:
    """Get or create the process-wide completion client."""
    global _client
    if _client is None:
        _client = get_completion_client(Settings.from_env())
    return _client


def _error(status_code: int, error: str, error_type: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error_type": error_type, "error": error},
    )


@app.get("/health")
def health():
    s = Settings.from_env()
    return {"status": "ok", "api_key_configured": s.has_api_key}


@app.get("/api/usage")
def api_usage():
    return get_client().usage()


@app.get("/api/models")
def api_models():
    client = get_client()
    return {
        "current": client.current_model,
        "priority": list(client.roster.models),
        "models": {
            model_id: {"max_context": info.max_context, "description": info.description}
            for model_id, info in GROQ_CHAT_MODELS.items()
        },
    }


@app.post("/api/clean")
def api_clean(payload: dict[str, Any] = Body(...)):
    """Preview how an HTML body is cleaned before prompting."""
    result = clean_html(payload.get("html"))
    return {
        "clean_text": result.clean_text,
        "original_length": result.original_length,
        "cleaned_length": result.cleaned_length,
    }


@app.post("/api/quiz")
async def api_generate_quiz(payload: dict[str, Any] = Body(...), max_retries: int | None = None):
    """Generate a quiz from article JSON (id, title, subtitle, body)."""
    try:
        article = extract_article(payload)
    except InvalidArticleError as e:
        return _error(422, str(e))

    client = get_client()
    retries = max_retries if max_retries is not None else Settings.from_env().max_retries
    quiz = await client.generate_quiz(article, retries)

    if not quiz.success:
        error_type = quiz.error_type or QuizErrorType.UNEXPECTED_ERROR
        return _error(ERROR_STATUS.get(error_type, 500), quiz.error_message or "", error_type.value)

    logger.info(f"Quiz for article {article.id}: {quiz.question_count} questions")
    return {"success": True, "usage": client.usage(), "quiz": quiz.to_dict()}
