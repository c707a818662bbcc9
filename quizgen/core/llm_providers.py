"""Groq chat-completion client with model rotation and rate-limit backoff."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from quizgen.core.errors import (
    BadRequestError,
    MalformedResponseError,
    QuizGenerationError,
    QuotaExceededError,
    RateLimitedError,
    TransportError,
)
from quizgen.core.models import Article, Quiz, QuizErrorType
from quizgen.core.prompts import (
    QUIZ_MAX_COMPLETION_TOKENS,
    QUIZ_TEMPERATURE,
    build_messages,
    build_quiz_prompt,
)
from quizgen.core.response_parser import extract_quiz
from quizgen.core.settings import DEFAULT_GROQ_URL, Settings
from quizgen.core.usage import UsageGuard

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Groq"

# Retry settings
DEFAULT_MAX_RETRIES = 2
RETRY_DELAY = 30.0  # seconds, multiplied by the attempt number
HTTP_TIMEOUT = 120.0  # seconds

MAX_ERROR_MESSAGE_LENGTH = 200
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Try again later."


@dataclass(frozen=True)
class ChatModelInfo:
    """Information about a chat/completion model."""

    model_id: str
    max_context: int  # Max context window tokens
    description: str


# Fallback order: strongest first, then smaller and faster models
GROQ_CHAT_MODELS: dict[str, ChatModelInfo] = {
    "llama-3.3-70b-versatile": ChatModelInfo(
        model_id="llama-3.3-70b-versatile",
        max_context=128000,
        description="Best quality. First choice for quiz generation.",
    ),
    "mixtral-8x7b-32768": ChatModelInfo(
        model_id="mixtral-8x7b-32768",
        max_context=32768,
        description="Mid-size fallback with a separate rate-limit bucket.",
    ),
    "llama-3.1-8b-instant": ChatModelInfo(
        model_id="llama-3.1-8b-instant",
        max_context=128000,
        description="Smallest and fastest. Last resort.",
    ),
}

DEFAULT_MODEL_PRIORITY: tuple[str, ...] = tuple(GROQ_CHAT_MODELS)


class ModelRoster:
    """Ordered fallback list of models. Thread-safe.

    rotate() only ever moves forward, wrapping after the last model, and the
    position is kept for the lifetime of the roster.
    """

    def __init__(self, models: Sequence[str] = DEFAULT_MODEL_PRIORITY) -> None:
        if not models:
            raise ValueError("ModelRoster needs at least one model")
        self._models = tuple(models)
        self._index = 0
        self._lock = threading.Lock()

    @property
    def models(self) -> tuple[str, ...]:
        return self._models

    @property
    def current_index(self) -> int:
        with self._lock:
            return self._index

    def current(self) -> str:
        with self._lock:
            return self._models[self._index % len(self._models)]

    def rotate(self) -> str:
        """Advance to the next model and return it."""
        with self._lock:
            self._index += 1
            model = self._models[self._index % len(self._models)]
        logger.info(f"Switching to model: {model}")
        return model


def _truncate(message: str, limit: int = MAX_ERROR_MESSAGE_LENGTH) -> str:
    return message[:limit]


def describe_error_response(response: httpx.Response) -> str:
    """Build a diagnostic string from a non-2xx response."""
    detail = f"Status: {response.status_code} {response.reason_phrase}".rstrip()
    body = response.text
    try:
        data = response.json()
    except ValueError:
        if body:
            detail += f" - Response: {body[:MAX_ERROR_MESSAGE_LENGTH]}"
        return detail

    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        detail += f" - {data['error'].get('message') or 'No error details'}"
    return detail


class GroqCompletionClient:
    """Generates quizzes through the Groq chat-completions API.

    The roster and usage guard represent provider-side state for one API key;
    pass the same instances to every client that shares the key.
    """

    def __init__(
        self,
        api_key: str,
        roster: ModelRoster | None = None,
        usage: UsageGuard | None = None,
        base_url: str = DEFAULT_GROQ_URL,
        retry_delay: float = RETRY_DELAY,
        timeout: float = HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Groq API key, sent as a bearer token.
            roster: Model fallback order. Defaults to GROQ_CHAT_MODELS order.
            usage: Daily quota guard. Defaults to a fresh guard.
            base_url: Chat-completions endpoint.
            retry_delay: Base backoff in seconds after a 429.
            timeout: HTTP timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self._api_key = api_key
        self._roster = roster or ModelRoster()
        self._usage = usage or UsageGuard(provider=PROVIDER_NAME)
        self._base_url = base_url
        self._retry_delay = retry_delay
        self._timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    @property
    def roster(self) -> ModelRoster:
        return self._roster

    @property
    def usage_guard(self) -> UsageGuard:
        return self._usage

    @property
    def current_model(self) -> str:
        return self._roster.current()

    def usage(self) -> dict[str, Any]:
        return self._usage.stats()

    async def generate_quiz(
        self,
        article: Article,
        max_retries: int = DEFAULT_MAX_RETRIES,
        cancel_event: asyncio.Event | None = None,
    ) -> Quiz:
        """Build the prompt for an article and generate its quiz."""
        prompt = build_quiz_prompt(article.full_text, article.title, article.id)
        return await self.complete(prompt, article, max_retries, cancel_event=cancel_event)

    async def complete(
        self,
        prompt: str,
        article: Article,
        max_retries: int = DEFAULT_MAX_RETRIES,
        cancel_event: asyncio.Event | None = None,
    ) -> Quiz:
        """Send a quiz prompt, retrying across models on 429/400.

        Args:
            prompt: Rendered quiz prompt.
            article: Source article (id and token estimate are copied to the quiz).
            max_retries: Additional attempts after the first one.
            cancel_event: Setting it during a backoff wait aborts the call.

        Returns:
            The parsed Quiz, or a failed Quiz with error_type and error_message.
            Never raises except for task cancellation.
        """
        retry_count = 0

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            while True:
                # The slot is reserved here and released if no response comes back
                if not self._usage.try_acquire():
                    error = QuotaExceededError(
                        f"Daily limit ({self._usage.daily_limit}) reached", provider=self.name
                    )
                    return self._failure(error, article, None)

                model = self._roster.current()
                logger.info(f"Using {self.name} model: {model} (Attempt {retry_count + 1})")

                try:
                    content = await self._request_completion(client, model, prompt)
                    quiz = extract_quiz(content, model, article.token_estimate)

                except RateLimitedError as e:
                    if retry_count >= max_retries:
                        return self._failure(e, article, model, RATE_LIMIT_MESSAGE)

                    wait_time = self._retry_delay * (retry_count + 1)
                    logger.warning(f"Rate limited on {model}. Waiting {wait_time:.0f}s...")
                    if not await self._backoff(wait_time, cancel_event):
                        logger.warning("Quiz generation cancelled during backoff")
                        return Quiz.failure(
                            QuizErrorType.CANCELLED,
                            "Cancelled while waiting for rate limit backoff",
                            article_id=article.id,
                            model_used=model,
                        )
                    self._roster.rotate()
                    retry_count += 1
                    continue

                except BadRequestError as e:
                    if retry_count >= max_retries:
                        return self._failure(e, article, model)

                    logger.warning(f"400 error from {model}. Trying with a different model...")
                    self._roster.rotate()
                    retry_count += 1
                    continue

                except QuizGenerationError as e:
                    return self._failure(e, article, model)

                except httpx.HTTPError as e:
                    logger.error(f"Transport error calling {self.name}: {type(e).__name__}: {e}")
                    return Quiz.failure(
                        QuizErrorType.TRANSPORT_ERROR,
                        _truncate(f"Unexpected error: {type(e).__name__}: {e}"),
                        article_id=article.id,
                        model_used=model,
                    )

                except Exception as e:
                    logger.exception(f"Unexpected error generating quiz for {article.id}")
                    return Quiz.failure(
                        QuizErrorType.UNEXPECTED_ERROR,
                        _truncate(f"Unexpected error: {e}"),
                        article_id=article.id,
                        model_used=model,
                    )

                if quiz.article_id is None:
                    quiz.article_id = article.id
                logger.info(f"Success with {model}: {quiz.question_count} questions")
                return quiz

    async def _request_completion(self, client: httpx.AsyncClient, model: str, prompt: str) -> str:
        """POST one chat completion and return the message content.

        Raises:
            RateLimitedError: On 429.
            BadRequestError: On 400.
            TransportError: On any other non-2xx status.
            MalformedResponseError: If the body has no completion text.
        """
        request_body: dict[str, Any] = {
            "model": model,
            "messages": build_messages(prompt),
            "temperature": QUIZ_TEMPERATURE,
            "max_completion_tokens": QUIZ_MAX_COMPLETION_TOKENS,
            "n": 1,
        }
        logger.debug(f"Sending request with model {model}, prompt length {len(prompt)} chars")

        try:
            response = await client.post(
                self._base_url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=request_body,
            )
        except BaseException:
            # No exchange completed, so the reserved slot is not spent
            self._usage.release()
            raise

        if response.is_success:
            return self._completion_text(response)

        detail = describe_error_response(response)
        message = _truncate(f"Groq API error: {detail}")
        logger.warning(f"{self.name} request failed: {detail}")

        if response.status_code == 429:
            raise RateLimitedError(message, provider=self.name, retriable=True)
        if response.status_code == 400:
            raise BadRequestError(message, provider=self.name, retriable=True)
        raise TransportError(message, provider=self.name)

    def _completion_text(self, response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError("Completion response is not JSON", provider=self.name) from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise MalformedResponseError("No choices in response", provider=self.name)

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise MalformedResponseError("Empty completion in response", provider=self.name)
        return content

    async def _backoff(self, delay: float, cancel_event: asyncio.Event | None) -> bool:
        """Wait out a rate limit. Returns False if cancel_event was set."""
        if cancel_event is None:
            await asyncio.sleep(delay)
            return True
        if cancel_event.is_set():
            return False
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False

    def _failure(
        self,
        error: QuizGenerationError,
        article: Article,
        model: str | None,
        message: str | None = None,
    ) -> Quiz:
        logger.error(f"Quiz generation failed ({error.error_type.value}): {error.message}")
        return Quiz.failure(
            error.error_type,
            _truncate(message or error.message),
            article_id=article.id,
            model_used=model,
        )


def get_completion_client(
    settings: Settings,
    roster: ModelRoster | None = None,
    usage: UsageGuard | None = None,
) -> GroqCompletionClient:
    """Create a client configured from settings."""
    return GroqCompletionClient(
        api_key=settings.groq_api_key,
        roster=roster,
        usage=usage or UsageGuard(daily_limit=settings.daily_limit, provider=PROVIDER_NAME),
        base_url=settings.groq_api_url,
        retry_delay=settings.retry_delay,
        timeout=settings.http_timeout,
    )
