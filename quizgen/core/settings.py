from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"
PLACEHOLDER_API_KEY = "your_groq_api_key_here"


@dataclass(frozen=True)
class Settings:
    groq_api_key: str
    groq_api_url: str
    daily_limit: int
    max_retries: int
    retry_delay: float
    http_timeout: float
    input_path: str
    cleaned_path: str
    output_dir: str

    @property
    def has_api_key(self) -> bool:
        return bool(self.groq_api_key) and self.groq_api_key != PLACEHOLDER_API_KEY

    @staticmethod
    def from_env() -> "Settings":
        def _i(name: str, default: str) -> int:
            return int(os.getenv(name, default).strip())

        def _f(name: str, default: str) -> float:
            return float(os.getenv(name, default).strip())

        return Settings(
            groq_api_key=os.getenv("GROQ_API_KEY", "").strip(),
            groq_api_url=os.getenv("GROQ_API_URL", DEFAULT_GROQ_URL).strip(),
            daily_limit=_i("QUIZ_DAILY_LIMIT", "10"),
            max_retries=_i("QUIZ_MAX_RETRIES", "2"),
            retry_delay=_f("QUIZ_RETRY_DELAY", "30"),
            http_timeout=_f("QUIZ_HTTP_TIMEOUT", "120"),
            input_path=os.getenv("QUIZ_INPUT_PATH", "./inputs/article.json").strip(),
            cleaned_path=os.getenv("QUIZ_CLEANED_PATH", "./cleaned/article_cleaned.txt").strip(),
            output_dir=os.getenv("QUIZ_OUTPUT_DIR", "./outputs").strip(),
        )
