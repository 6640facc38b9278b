"""
Rate limiting for API endpoints
"""
import time
from collections import defaultdict
from fastapi import Request
from typing import Dict, List, Optional
from uuid import UUID
import logging

from app.config import settings

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    """Raised when a client goes over one of its windows"""

    def __init__(self, limit: int, window: str, retry_after: int):
        self.limit = limit
        self.window = window
        self.retry_after = retry_after
        super().__init__(f"Too many requests. Limit: {limit} requests per {window}")


class RateLimiter:
    """
    In-memory sliding-window rate limiter
    Production: Use Redis for distributed rate limiting
    """

    def __init__(self, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour

        # Storage: {client_id: [timestamp, ...]}
        self.minute_tracker: Dict[str, List[float]] = defaultdict(list)
        self.hour_tracker: Dict[str, List[float]] = defaultdict(list)

    def get_client_id(self, request: Request) -> str:
        """Caller id from the gateway header, falling back to the client IP"""
        user_id = request.headers.get("x-user-id")
        if user_id:
            try:
                return f"user:{UUID(user_id)}"
            except ValueError:
                logger.debug(f"Ignoring malformed X-User-Id for rate limiting: {user_id!r}")

        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    def _cleanup_old_entries(self, tracker: Dict[str, List[float]], window_seconds: int, now: float):
        """Remove entries older than window"""
        cutoff = now - window_seconds

        for client_id in list(tracker.keys()):
            tracker[client_id] = [ts for ts in tracker[client_id] if ts > cutoff]

            # Remove empty entries
            if not tracker[client_id]:
                del tracker[client_id]

    def check(self, client_id: str, now: Optional[float] = None) -> None:
        """
        Record a request for ``client_id``

        Raises:
            RateLimitExceeded: if the minute or hour window is full
        """
        now = now if now is not None else time.time()

        self._cleanup_old_entries(self.minute_tracker, 60, now)
        self._cleanup_old_entries(self.hour_tracker, 3600, now)

        minute_requests = len(self.minute_tracker[client_id])
        if minute_requests >= self.requests_per_minute:
            logger.warning(f"Rate limit exceeded (minute): {client_id}")
            raise RateLimitExceeded(self.requests_per_minute, "minute", 60)

        hour_requests = len(self.hour_tracker[client_id])
        if hour_requests >= self.requests_per_hour:
            logger.warning(f"Rate limit exceeded (hour): {client_id}")
            raise RateLimitExceeded(self.requests_per_hour, "hour", 3600)

        self.minute_tracker[client_id].append(now)
        self.hour_tracker[client_id].append(now)

        logger.debug(f"Rate limit check passed: {client_id} (minute: {minute_requests + 1}, hour: {hour_requests + 1})")

    async def check_rate_limit(self, request: Request) -> None:
        self.check(self.get_client_id(request))


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR
)
