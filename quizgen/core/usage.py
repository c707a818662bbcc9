"""Daily request quota tracking for the completion API."""

from __future__ import annotations

import logging
import threading
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_DAILY_LIMIT = 10


class UsageGuard:
    """Counts HTTP exchanges against a daily limit. Thread-safe.

    One guard belongs to one API credential. Every completed exchange counts,
    whatever its status code, since the provider bills quota for both. Callers
    reserve a slot with try_acquire() before sending and release() it when no
    response arrived.
    """

    def __init__(self, daily_limit: int = DEFAULT_DAILY_LIMIT, provider: str = "Groq") -> None:
        if daily_limit < 0:
            raise ValueError(f"daily_limit must be >= 0, got {daily_limit}")
        self._daily_limit = daily_limit
        self._provider = provider
        self._requests_today = 0
        self._lock = threading.Lock()

    @property
    def daily_limit(self) -> int:
        return self._daily_limit

    @property
    def requests_today(self) -> int:
        with self._lock:
            return self._requests_today

    def can_proceed(self) -> bool:
        with self._lock:
            return self._requests_today < self._daily_limit

    @property
    def is_ready(self) -> bool:
        return self.can_proceed()

    def try_acquire(self) -> bool:
        """Reserve one request slot if the limit allows it.

        Check and increment happen under one lock, so concurrent callers can
        never reserve more than daily_limit slots between them.
        """
        with self._lock:
            if self._requests_today >= self._daily_limit:
                return False
            self._requests_today += 1
            count = self._requests_today
        logger.debug(f"{self._provider} usage: {count}/{self._daily_limit}")
        return True

    def release(self) -> None:
        """Give back a slot whose exchange never completed."""
        with self._lock:
            if self._requests_today > 0:
                self._requests_today -= 1

    def record_request(self) -> None:
        with self._lock:
            self._requests_today += 1
            count = self._requests_today
        logger.debug(f"{self._provider} usage: {count}/{self._daily_limit}")

    def stats(self) -> dict[str, Any]:
        with self._lock:
            used = self._requests_today
        return {
            "requests_today": used,
            "daily_limit": self._daily_limit,
            "remaining": max(self._daily_limit - used, 0),
            "provider": self._provider,
        }
