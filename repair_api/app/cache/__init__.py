"""In-memory rate limiters: singleton instances used across the app."""

from app.cache.rate_limiter import RateLimiter, RateLimitRecord
from app.config import settings

diagnosis_limiter = RateLimiter(
    window_seconds=settings.diagnosis_rate_window_seconds,
    max_requests=settings.diagnosis_rate_limit,
    name="diagnosis",
)
spare_parts_limiter = RateLimiter(
    window_seconds=settings.spare_parts_rate_window_seconds,
    max_requests=settings.spare_parts_rate_limit,
    name="spare_parts",
)

__all__ = ["diagnosis_limiter", "spare_parts_limiter", "RateLimiter", "RateLimitRecord"]
