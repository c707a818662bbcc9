"""HTML to plain text cleaning for article bodies.

Uses BeautifulSoup to drop non-content elements, then a line-based pass:
- short boilerplate lines are discarded
- whitespace is collapsed and [12]-style citation markers removed
- text longer than MAX_CLEAN_LENGTH is cut, at a sentence end when one is close
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup, NavigableString

from quizgen.core.errors import InvalidArticleError
from quizgen.core.models import Article, Author, CleaningResult

logger = logging.getLogger(__name__)

MAX_CLEAN_LENGTH = 6000
# Sentence-boundary cut only if it keeps at least this share of the cap
SENTENCE_CUT_RATIO = 0.7
TRUNCATION_MARKER = " [truncated]"

# Lines of this length or shorter are navigation/boilerplate fragments
SHORT_LINE_LENGTH = 10

MULTI_SPACE = re.compile(r"\s+")
CITATION_PATTERN = re.compile(r"\[\d+\]")

# Removed with their text before extraction
NON_CONTENT_TAGS = [
    "script",
    "style",
    "nav",
    "footer",
    "header",
    "aside",
    "iframe",
    "button",
    "form",
    "input",
    "select",
    "textarea",
    "img",
    "video",
    "audio",
    "svg",
    "noscript",
    "object",
    "embed",
    "a",
]

# Elements that end a line of text
BLOCK_TAGS = [
    "p",
    "div",
    "section",
    "article",
    "main",
    "blockquote",
    "pre",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "ul",
    "ol",
    "li",
    "dl",
    "dt",
    "dd",
    "table",
    "tr",
    "td",
    "th",
    "figure",
    "figcaption",
    "br",
    "hr",
]


def _html_to_lines(html: str) -> list[str]:
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup.find_all(NON_CONTENT_TAGS):
        # Nested matches are already gone with their parent
        if not tag.decomposed:
            tag.decompose()

    # Source line wrapping is not a line break; only block boundaries are.
    # Comments and other NavigableString subclasses are left alone.
    for text in list(soup.find_all(string=True)):
        if type(text) is NavigableString:
            text.replace_with(MULTI_SPACE.sub(" ", text))

    for tag in soup.find_all(BLOCK_TAGS):
        tag.insert_after("\n")

    return soup.get_text().splitlines()


def normalize_lines(lines: list[str]) -> str:
    """Filter and normalize raw text lines into one space-joined string."""
    kept = []
    for line in lines:
        line = line.strip()
        if len(line) <= SHORT_LINE_LENGTH:
            continue
        line = MULTI_SPACE.sub(" ", line)
        line = CITATION_PATTERN.sub("", line)
        kept.append(line)

    return MULTI_SPACE.sub(" ", " ".join(kept)).strip()


def truncate_text(text: str, max_length: int = MAX_CLEAN_LENGTH) -> str:
    """Cut text to max_length, preferring the last sentence end in the window.

    A ". " boundary is used when it lies at or after SENTENCE_CUT_RATIO of the
    cap; otherwise the hard cap is used. The marker is appended either way.
    """
    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    last_period = truncated.rfind(". ")
    if last_period >= max_length * SENTENCE_CUT_RATIO:
        return truncated[: last_period + 1] + TRUNCATION_MARKER
    return truncated + TRUNCATION_MARKER


def clean_html(html: str | None) -> CleaningResult:
    """Strip markup from an article body and return bounded plain text.

    Never raises: a parser failure is logged and yields an empty result.
    """
    if not html or not html.strip():
        return CleaningResult()

    try:
        lines = _html_to_lines(html)
    except Exception as e:
        logger.error(f"Error cleaning HTML: {type(e).__name__}: {e}")
        return CleaningResult()

    clean_text = truncate_text(normalize_lines(lines))
    return CleaningResult(
        clean_text=clean_text,
        original_length=len(html),
        cleaned_length=len(clean_text),
    )


def _optional_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


def _parse_author(raw: Any) -> Author | None:
    if not isinstance(raw, dict):
        return None
    return Author(
        display_name=_optional_str(raw.get("displayName")),
        id=_optional_str(raw.get("id")),
        username=_optional_str(raw.get("username")),
    )


def extract_article(data: dict[str, Any]) -> Article:
    """Build an Article from raw article JSON, cleaning its HTML body.

    Raises:
        InvalidArticleError: If data is not an object or has no id.
    """
    if not isinstance(data, dict):
        raise InvalidArticleError(f"Article JSON must be an object, got {type(data).__name__}")

    raw_id = data.get("id")
    if raw_id is None or not str(raw_id).strip():
        raise InvalidArticleError("Article JSON has no id")

    title = str(data.get("title") or "")
    subtitle = _optional_str(data.get("subtitle")) or None
    html_body = str(data.get("body") or "")

    cleaned = clean_html(html_body)

    parts = [title]
    if subtitle:
        parts.append(subtitle)
    parts.append(cleaned.clean_text)
    full_text = "\n\n".join(parts)

    return Article(
        id=str(raw_id),
        title=title,
        subtitle=subtitle,
        html_body=html_body,
        post_number=_optional_int(data.get("postNumber")),
        author=_parse_author(data.get("author")),
        clean_text=cleaned.clean_text,
        full_text=full_text,
        original_length=cleaned.original_length,
        cleaned_length=cleaned.cleaned_length,
        token_estimate=len(full_text) // 4,
    )


def load_article(path: str | Path) -> Article:
    """Read article JSON from a file and build the Article."""
    path = Path(path)
    logger.info(f"Processing: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidArticleError(f"Could not read article from {path}: {e}") from e

    article = extract_article(data)
    logger.info(
        f"Article '{article.title}' cleaned: {article.original_length:,} -> "
        f"{article.cleaned_length:,} chars (~{article.token_estimate:,} tokens)"
    )
    return article
