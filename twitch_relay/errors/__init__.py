"""Error taxonomy and error logging helpers."""

from .internal import (  # noqa: F401
    AuthExpiredError,
    ConfigurationError,
    HandlerError,
    InternalError,
    OAuthError,
    QueryError,
    RateLimitContext,
    RateLimitError,
    TokenMissingError,
    TransientNetworkError,
)

__all__ = [
    "AuthExpiredError",
    "ConfigurationError",
    "HandlerError",
    "InternalError",
    "OAuthError",
    "QueryError",
    "RateLimitContext",
    "RateLimitError",
    "TokenMissingError",
    "TransientNetworkError",
]
