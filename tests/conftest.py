"""Shared fixtures for quiz generator tests."""

import json

import httpx
import pytest

from quizgen.core.content_cleaner import extract_article

DIFFICULTY_ORDER = ["Easy"] * 8 + ["Medium"] * 7 + ["Hard"] * 5


def build_quiz_payload(article_id="a1", count=20):
    return {
        "quiz_title": "Quiz: History",
        "article_id": article_id,
        "generated_at": "timestamp",
        "model_used": "made-up-model",
        "token_estimate": 99999,
        "questions": [
            {
                "id": i,
                "question": f"Question number {i}?",
                "options": {
                    "A": f"Answer {i}A",
                    "B": f"Answer {i}B",
                    "C": f"Answer {i}C",
                    "D": f"Answer {i}D",
                },
                "correct_answer": "ABCD"[i % 4],
                "explanation": f"Because of paragraph {i}.",
                "difficulty": DIFFICULTY_ORDER[(i - 1) % 20],
            }
            for i in range(1, count + 1)
        ],
    }


def completion_response(content, status_code=200):
    """Chat-completions response wrapping content as the assistant message."""
    return httpx.Response(
        status_code,
        json={
            "id": "chatcmpl-test",
            "object": "chat.completion",
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": content},
                    "finish_reason": "stop",
                }
            ],
        },
    )


@pytest.fixture
def quiz_payload():
    return build_quiz_payload()


@pytest.fixture
def quiz_json(quiz_payload):
    return json.dumps(quiz_payload)


@pytest.fixture
def article():
    return extract_article(
        {
            "id": "a1",
            "postNumber": 7,
            "title": "History",
            "subtitle": "A short overview",
            "body": "<p>Short line</p><p>This is a sufficiently long sentence about history.</p>",
            "author": {"displayName": "Jane Roe", "id": "u1", "username": "jroe"},
        }
    )
