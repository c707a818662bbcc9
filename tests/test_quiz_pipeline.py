"""Tests for quiz_pipeline.py and the CLI entry point."""

import json
from dataclasses import replace
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from conftest import completion_response
from quizgen import cli
from quizgen.core.llm_providers import GroqCompletionClient
from quizgen.core.models import Quiz, QuizErrorType
from quizgen.core.quiz_pipeline import (
    PipelineResult,
    cleanup_temp_file,
    quiz_filename,
    run_quiz_pipeline,
    save_quiz,
)
from quizgen.core.response_parser import extract_quiz
from quizgen.core.settings import Settings
from quizgen.core.usage import UsageGuard

ARTICLE = {
    "id": "a1",
    "title": "History",
    "subtitle": "A short overview",
    "body": "<p>Short line</p><p>This is a sufficiently long sentence about history.</p>",
}


@pytest.fixture
def settings(tmp_path):
    input_path = tmp_path / "inputs" / "article.json"
    input_path.parent.mkdir()
    input_path.write_text(json.dumps(ARTICLE), encoding="utf-8")
    return Settings(
        groq_api_key="test-key",
        groq_api_url="https://api.groq.com/openai/v1/chat/completions",
        daily_limit=10,
        max_retries=2,
        retry_delay=0,
        http_timeout=5,
        input_path=str(input_path),
        cleaned_path=str(tmp_path / "cleaned" / "article_cleaned.txt"),
        output_dir=str(tmp_path / "outputs"),
    )


def mock_client(handler, daily_limit=10):
    return GroqCompletionClient(
        api_key="test-key",
        usage=UsageGuard(daily_limit=daily_limit),
        retry_delay=0,
        transport=httpx.MockTransport(handler),
    )


class TestSaveQuiz:
    def test_filename_uses_article_id(self):
        assert quiz_filename(Quiz(article_id="a1")) == "quiz_a1_groq.json"
        assert quiz_filename(Quiz()) == "quiz_unknown_groq.json"

    def test_writes_outbound_document(self, tmp_path, quiz_json):
        quiz = extract_quiz(quiz_json, "llama-3.3-70b-versatile", 17)
        path = save_quiz(quiz, tmp_path / "nested" / "outputs")

        assert path == tmp_path / "nested" / "outputs" / "quiz_a1_groq.json"
        document = json.loads(path.read_text(encoding="utf-8"))
        assert set(document) == {
            "quiz_title",
            "article_id",
            "generated_at",
            "model_used",
            "token_estimate",
            "questions",
        }
        assert document["model_used"] == "llama-3.3-70b-versatile"
        assert document["token_estimate"] == 17
        assert len(document["questions"]) == 20
        assert document["generated_at"].endswith("Z")

    def test_keeps_non_ascii(self, tmp_path):
        path = save_quiz(Quiz(quiz_title="Quiz: Café", article_id="c"), tmp_path)
        assert "Café" in path.read_text(encoding="utf-8")


class TestCleanupTempFile:
    def test_removes_existing_file(self, tmp_path):
        path = tmp_path / "tmp.txt"
        path.write_text("x")
        assert cleanup_temp_file(path) is True
        assert not path.exists()

    def test_missing_file(self, tmp_path):
        assert cleanup_temp_file(tmp_path / "missing.txt") is False


@pytest.mark.asyncio
class TestRunQuizPipeline:
    async def test_end_to_end(self, settings, quiz_json):
        captured = []

        def handler(request):
            captured.append(json.loads(request.content))
            return completion_response(quiz_json)

        result = await run_quiz_pipeline(settings, client=mock_client(handler))

        assert result.success is True
        assert result.error is None
        assert result.article.clean_text == "This is a sufficiently long sentence about history."
        assert result.output_path.name == "quiz_a1_groq.json"
        assert result.usage["requests_today"] == 1

        document = json.loads(result.output_path.read_text(encoding="utf-8"))
        assert document["article_id"] == "a1"
        assert document["model_used"] == "llama-3.3-70b-versatile"
        assert len(document["questions"]) == 20

        prompt = captured[0]["messages"][1]["content"]
        assert "ARTICLE TITLE: History" in prompt
        assert "Short line" not in prompt

        # Intermediate artifact removed
        assert not Path(settings.cleaned_path).exists()

    async def test_missing_input(self, settings, tmp_path):
        settings = replace(settings, input_path=str(tmp_path / "nope.json"))
        calls = []

        result = await run_quiz_pipeline(settings, client=mock_client(calls.append))

        assert result.success is False
        assert "Input file not found" in result.error
        assert calls == []

    async def test_invalid_article(self, settings):
        with open(settings.input_path, "w", encoding="utf-8") as f:
            json.dump({"title": "No id here"}, f)

        result = await run_quiz_pipeline(
            settings, client=mock_client(lambda request: completion_response("{}"))
        )

        assert result.success is False
        assert result.article is None

    async def test_generation_failure_keeps_no_output(self, settings):
        def handler(request):
            return httpx.Response(500, json={"error": {"message": "down"}})

        result = await run_quiz_pipeline(settings, client=mock_client(handler))

        assert result.success is False
        assert result.quiz.error_type == QuizErrorType.TRANSPORT_ERROR
        assert result.error.startswith("Groq API error")
        assert result.output_path is None
        assert result.to_dict()["question_count"] == 0

    async def test_empty_question_list(self, settings):
        content = json.dumps({"quiz_title": "Quiz: History", "article_id": "a1", "questions": []})
        result = await run_quiz_pipeline(
            settings, client=mock_client(lambda request: completion_response(content))
        )

        assert result.success is False
        assert result.error == "No questions generated"

    async def test_quota_exhausted(self, settings, quiz_json):
        calls = []

        def handler(request):
            calls.append(request)
            return completion_response(quiz_json)

        result = await run_quiz_pipeline(settings, client=mock_client(handler, daily_limit=0))

        assert result.success is False
        assert result.quiz.error_type == QuizErrorType.QUOTA_EXCEEDED
        assert calls == []


class TestCli:
    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        with patch("quizgen.cli.load_dotenv"), patch(
            "quizgen.cli.run_quiz_pipeline", new_callable=AsyncMock
        ) as run:
            assert cli.main([]) == 1
        run.assert_not_called()

    def test_placeholder_api_key(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "your_groq_api_key_here")
        with patch("quizgen.cli.load_dotenv"):
            assert cli.main([]) == 1

    def test_success_with_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GROQ_API_KEY", "real-key")
        result = PipelineResult(success=True, output_path=tmp_path / "quiz_a1_groq.json")

        with patch("quizgen.cli.load_dotenv"), patch(
            "quizgen.cli.run_quiz_pipeline", new_callable=AsyncMock, return_value=result
        ) as run:
            code = cli.main(["--input", "in.json", "--output-dir", "out", "--max-retries", "0"])

        assert code == 0
        settings = run.await_args.args[0]
        assert settings.input_path == "in.json"
        assert settings.output_dir == "out"
        assert settings.max_retries == 0
        assert settings.groq_api_key == "real-key"

    def test_pipeline_failure_exit_code(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "real-key")
        result = PipelineResult(success=False, error="Rate limit exceeded. Try again later.")

        with patch("quizgen.cli.load_dotenv"), patch(
            "quizgen.cli.run_quiz_pipeline", new_callable=AsyncMock, return_value=result
        ):
            assert cli.main([]) == 1
