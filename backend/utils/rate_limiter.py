"""Rate limiting for AI assist calls, keyed per user."""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import os

logger = logging.getLogger(__name__)


def ai_requests_per_minute() -> int:
    return int(os.environ.get("AI_RATE_LIMIT_PER_MINUTE", "10"))


class RateLimiter:
    def __init__(self):
        # In-memory, per process
        self.attempts = {}

    async def check_rate_limit(
        self,
        key: str,
        max_attempts: int,
        window_minutes: int
    ) -> tuple[bool, Optional[str]]:
        """
        Check if rate limit is exceeded.

        Returns:
            (allowed: bool, error_message: Optional[str])
        """
        now = datetime.now(timezone.utc)
        window = timedelta(minutes=window_minutes)

        recent = [ts for ts in self.attempts.get(key, []) if now - ts < window]
        self.attempts[key] = recent

        if len(recent) >= max_attempts:
            wait_seconds = int((min(recent) + window - now).total_seconds())
            logger.warning(f"Rate limit hit for {key}")
            return False, f"Rate limit exceeded. Try again in {wait_seconds} seconds"

        recent.append(now)
        return True, None

    def reset(self, key: Optional[str] = None):
        if key is None:
            self.attempts.clear()
        else:
            self.attempts.pop(key, None)


rate_limiter = RateLimiter()
