"""
Tests for errors/handling.py and the internal error hierarchy
"""

import asyncio
from unittest.mock import patch

import aiohttp
import pytest

from twitch_relay.errors.handling import handle_api_error, log_error
from twitch_relay.errors.internal import (
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


class TestErrorHierarchy:
    """Semantic categories used by retry and shutdown logic"""

    def test_oauth_family(self):
        assert issubclass(AuthExpiredError, OAuthError)
        assert issubclass(TokenMissingError, OAuthError)
        assert issubclass(OAuthError, InternalError)

    def test_data_is_copied(self):
        data = {"k": 1}
        error = ConfigurationError("bad", data=data)
        data["k"] = 2
        assert error.data == {"k": 1}
        assert str(error) == "bad"

    def test_query_error_carries_response(self):
        error = QueryError("fail", status=500, headers={"A": "b"}, body="oops")
        assert (error.status, error.headers, error.body) == (500, {"A": "b"}, "oops")
        assert error.data == {"status": 500}

    def test_rate_limit_error_context(self):
        error = RateLimitError(context=RateLimitContext("GET users", 5, 12.0))
        assert error.context.retries == 5
        assert error.data["rate_limit"] is error.context
        assert RateLimitError().context == RateLimitContext()


class TestLogError:
    """log_error maps exceptions onto aggregated categories"""

    @pytest.mark.parametrize(
        "error, category",
        [
            (TransientNetworkError("x"), "network"),
            (ConnectionResetError("x"), "network"),
            (AuthExpiredError("x"), "auth"),
            (RateLimitError(), "ratelimit"),
            (ConfigurationError("x"), "config"),
            (HandlerError("x"), "handler"),
            (QueryError("x", status=404), "query"),
            (InternalError("x"), "internal"),
            (ValueError("x"), "unknown"),
        ],
    )
    def test_categories(self, error, category):
        with patch("twitch_relay.errors.handling.log_structured_error") as mock_log:
            log_error("Something failed", error, context={"a": 1})
        mock_log.assert_called_once_with(
            error_type=category,
            message=f"Something failed: {error}",
            exception=error,
            context={"a": 1},
        )


class TestHandleApiError:
    @pytest.mark.asyncio
    async def test_returns_result(self):
        async def op():
            return 42

        assert await handle_api_error(op, "test op") == 42

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc",
        [aiohttp.ClientConnectionError("down"), asyncio.TimeoutError(), OSError("unreachable")],
    )
    async def test_transport_errors_become_transient(self, exc):
        async def op():
            raise exc

        with pytest.raises(TransientNetworkError) as exc_info:
            await handle_api_error(op, "Helix GET users")
        assert "Helix GET users" in str(exc_info.value)
        assert exc_info.value.__cause__ is exc

    @pytest.mark.asyncio
    async def test_internal_errors_pass_through(self):
        async def op():
            raise QueryError("nope", status=400)

        with pytest.raises(QueryError):
            await handle_api_error(op, "Helix GET users")

    @pytest.mark.asyncio
    async def test_other_errors_propagate_unchanged(self):
        async def op():
            raise KeyError("bug")

        with pytest.raises(KeyError):
            await handle_api_error(op, "Helix GET users")
