"""Prompt templates for quiz generation.

The wording of QUIZ_PROMPT_TEMPLATE is the contract with the model: question
count, difficulty split and the JSON example are what the response parser
expects back.
"""
from __future__ import annotations

MAX_PROMPT_ARTICLE_LENGTH = 12000
PROMPT_TRUNCATION_MARKER = "... [truncated]"
TITLE_PREVIEW_LENGTH = 40

QUESTION_COUNT = 20
DIFFICULTY_SPLIT = {"Easy": 8, "Medium": 7, "Hard": 5}

# Request parameters for the chat completion
QUIZ_TEMPERATURE = 0.7
QUIZ_MAX_COMPLETION_TOKENS = 3500

SYSTEM_PROMPT = (
    "You are an expert quiz creator. You always output valid JSON without any additional text."
)

QUIZ_PROMPT_TEMPLATE = """Create 20 multiple-choice questions from this article.

ARTICLE TITLE: {article_title}
ARTICLE CONTENT:
{article_text}

INSTRUCTIONS - READ CAREFULLY:
1. Create EXACTLY 20 multiple-choice questions. Not 19, not 21. Exactly 20.
2. Difficulty distribution: 8 Easy, 7 Medium, 5 Hard.
3. For EACH question, provide:
   - A clear, complete question text
   - 4 distinct options labeled A, B, C, D
   - The correct answer letter (A, B, C, or D)
   - A brief explanation (1-2 sentences)
   - The difficulty level (Easy, Medium, or Hard)

4. Base ALL questions SOLELY on the article content provided. Do not use external knowledge.
5. Format the output as a VALID JSON object with this EXACT structure:

{{
  "quiz_title": "Quiz: {title_preview}",
  "article_id": "{article_id}",
  "generated_at": "timestamp",
  "questions": [
    {{
      "id": 1,
      "question": "Full question text here?",
      "options": {{"A": "Option A text", "B": "Option B text", "C": "Option C text", "D": "Option D text"}},
      "correct_answer": "A",
      "explanation": "Brief explanation here.",
      "difficulty": "Easy"
    }}
  ]
}}

CRITICAL: The "questions" array must contain exactly 20 objects. Output ONLY the JSON, no additional text, no markdown formatting, no code blocks."""


def build_quiz_prompt(article_text: str, article_title: str, article_id: str) -> str:
    """Render the quiz prompt for one article.

    Args:
        article_text: Cleaned article text (title/subtitle included).
        article_title: Article title, also previewed in the example quiz_title.
        article_id: Echoed back by the model in article_id.

    Returns:
        The user message for the chat completion.
    """
    article_text = article_text or ""
    article_title = article_title or ""

    if len(article_text) > MAX_PROMPT_ARTICLE_LENGTH:
        article_text = article_text[:MAX_PROMPT_ARTICLE_LENGTH] + PROMPT_TRUNCATION_MARKER

    return QUIZ_PROMPT_TEMPLATE.format(
        article_title=article_title,
        article_text=article_text,
        title_preview=article_title[:TITLE_PREVIEW_LENGTH],
        article_id=article_id,
    )


def build_messages(prompt: str) -> list[dict[str, str]]:
    """Chat messages for a quiz prompt."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]
