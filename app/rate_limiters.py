"""
Rate limiting configuration for API calls.
"""
from aiolimiter import AsyncLimiter

from app.config import settings


class RateLimiters:
    """Centralized rate limiters for different APIs."""

    def __init__(self, fireflies_per_minute: int = 50, openai_per_minute: int = 10):
        """Initialize rate limiters for different services."""
        # Fireflies: 50 requests per minute on business plans, fewer on free tier
        self.fireflies_limiter = AsyncLimiter(max_rate=fireflies_per_minute, time_period=60)

        # OpenAI: adjust based on your tier
        self.openai_limiter = AsyncLimiter(max_rate=openai_per_minute, time_period=60)

    async def acquire_fireflies_limit(self):
        """Acquire rate limit slot for the Fireflies API."""
        async with self.fireflies_limiter:
            pass

    async def acquire_openai_limit(self):
        """Acquire rate limit slot for OpenAI API."""
        async with self.openai_limiter:
            pass


# Global rate limiters instance
rate_limiters = RateLimiters(
    fireflies_per_minute=settings.fireflies_rate_limit,
    openai_per_minute=settings.openai_rate_limit,
)
