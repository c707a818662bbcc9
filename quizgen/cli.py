"""CLI for generating a quiz from one article JSON file."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys

from dotenv import load_dotenv

from quizgen.core.quiz_pipeline import run_quiz_pipeline
from quizgen.core.settings import Settings

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Configure standard logging format for CLI tools."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a 20-question quiz from an article.")
    parser.add_argument("--input", help="Article JSON file (default: QUIZ_INPUT_PATH)")
    parser.add_argument("--cleaned", help="Where to write the cleaned text while running")
    parser.add_argument("--output-dir", help="Directory for the quiz JSON")
    parser.add_argument("--max-retries", type=int, help="Retries after the first attempt")
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        "input_path": args.input,
        "cleaned_path": args.cleaned,
        "output_dir": args.output_dir,
        "max_retries": args.max_retries,
    }
    return dataclasses.replace(settings, **{k: v for k, v in overrides.items() if v is not None})


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    setup_logging()
    args = parse_args(argv)

    settings = apply_overrides(Settings.from_env(), args)
    if not settings.has_api_key:
        logger.error("GROQ_API_KEY is not set. Add it to the environment or a .env file.")
        return 1

    result = asyncio.run(run_quiz_pipeline(settings))
    if not result.success:
        logger.error(f"Process failed: {result.error}")
        return 1

    logger.info(f"Process complete: {result.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
