"""Rate limiting and retry toolkit."""

from .rate_limit_headers import parse_reset_epoch  # noqa: F401
from .retry_scheduler import RateLimitState, RetryScheduler  # noqa: F401

__all__ = [
    "RateLimitState",
    "RetryScheduler",
    "parse_reset_epoch",
]
