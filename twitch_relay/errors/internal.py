"""Centralized internal error hierarchy.

These exceptions provide semantic categories for retry logic and higher-level
error handling. Only raise these inside application/network boundaries; wrap
raw aiohttp / OS errors instead of surfacing them.

Classes:
  InternalError          Base for all internal errors.
  ConfigurationError     Missing secret/nickname or unusable refresh token. Fatal.
  TransientNetworkError  Connect/write failures and dropped connections.
  OAuthError             Authentication failures reported by the API.
  AuthExpiredError       Access token still rejected after one refresh.
  TokenMissingError      API reported that no token was sent. Never retried.
  QueryError             Non-success HTTP response (status, headers, body).
  RateLimitError         HTTP 429 retries exhausted.
  HandlerError           A command handler could not produce a reply.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass


class InternalError(Exception):
    """Base class for all internal application errors with metadata support.

    Attributes:
        data: Dictionary containing arbitrary structured context data.

    Args:
        message: Descriptive error message.
        data: Optional mapping of additional context data.
    """

    data: dict[str, object]

    def __init__(
        self, message: str, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message)
        # Copy into a plain dict to avoid unexpected mutations from caller.
        self.data = dict(data) if data else {}


class ConfigurationError(InternalError):
    """Raised for operator-level misconfiguration.

    Covers missing chat secret or nickname and a refresh token that the
    token endpoint refuses. Never retried.
    """


class TransientNetworkError(InternalError):
    """Raised for network or transport layer errors.

    Connection timeouts, resets and write failures. The session reconnect
    policy retries these up to its attempt ceiling.
    """


class OAuthError(InternalError):
    """Raised for OAuth authentication failures reported by the API."""


class AuthExpiredError(OAuthError):
    """The access token was rejected again after a refresh-and-retry cycle."""


class TokenMissingError(OAuthError):
    """The API reported that the request carried no OAuth token."""


class QueryError(InternalError):
    """Raised when an HTTP call completes with a non-success status.

    Args:
        message: Descriptive error message.
        status: HTTP status code of the response.
        headers: Response headers (used to read rate limit metadata).
        body: Raw response body.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int,
        headers: Mapping[str, str] | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message, data={"status": status})
        self.status = status
        self.headers: dict[str, str] = dict(headers) if headers else {}
        self.body = body


@dataclass
class RateLimitContext:
    """Context information for rate limiting errors.

    Attributes:
        endpoint: Endpoint whose retries were exhausted.
        retries: Number of retries performed.
        reset_epoch: Last reset epoch announced by the server, if any.
    """

    endpoint: str = ""
    retries: int = 0
    reset_epoch: float | None = None


class RateLimitError(InternalError):
    """Raised when HTTP 429 responses outlast the retry ceiling."""

    def __init__(
        self, message: str = "Rate limited", *, context: RateLimitContext | None = None
    ):
        super().__init__(message, data={"rate_limit": context})
        self.context = context or RateLimitContext()


class HandlerError(InternalError):
    """Raised by command handlers that cannot produce a reply.

    The router logs it and treats the tier as having no reply.
    """


__all__ = [
    "InternalError",
    "ConfigurationError",
    "TransientNetworkError",
    "OAuthError",
    "AuthExpiredError",
    "TokenMissingError",
    "QueryError",
    "RateLimitError",
    "RateLimitContext",
    "HandlerError",
]
