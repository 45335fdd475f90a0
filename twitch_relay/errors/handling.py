from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import aiohttp

from ..logging_config import log_structured_error
from .internal import (
    ConfigurationError,
    HandlerError,
    InternalError,
    OAuthError,
    QueryError,
    RateLimitError,
    TransientNetworkError,
)

T = TypeVar("T")


def log_error(message: str, error: Exception, context: dict | None = None) -> None:
    """Logs an error message with the associated exception details.

    The exception is mapped onto an error category so that repeated failures
    of the same kind aggregate together in the structured log.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
    """
    error_type = "unknown"
    if isinstance(error, TransientNetworkError | OSError | ConnectionError):
        error_type = "network"
    elif isinstance(error, OAuthError):
        error_type = "auth"
    elif isinstance(error, RateLimitError):
        error_type = "ratelimit"
    elif isinstance(error, ConfigurationError):
        error_type = "config"
    elif isinstance(error, HandlerError):
        error_type = "handler"
    elif isinstance(error, QueryError):
        error_type = "query"
    elif isinstance(error, InternalError):
        error_type = "internal"

    log_structured_error(
        error_type=error_type,
        message=f"{message}: {str(error)}",
        exception=error,
        context=context,
    )


async def handle_api_error(operation: Callable[[], Awaitable[T]], context: str) -> T:
    """Run an HTTP operation, translating transport failures into internal errors.

    Internal errors raised by the operation itself pass through untouched so
    that sentinel and status handling stays with the caller.

    Args:
        operation: The async API operation to execute.
        context: Descriptive context for the operation (e.g., "Helix GET users").

    Returns:
        The result of the operation if successful.

    Raises:
        TransientNetworkError: On aiohttp, timeout or OS level failures.
    """
    try:
        return await operation()
    except InternalError:
        raise
    except (aiohttp.ClientError, TimeoutError, OSError) as e:
        error_context = {"operation": context, "timestamp": time.time()}
        log_error(f"API operation failed in {context}", e, context=error_context)
        raise TransientNetworkError(
            f"Network connectivity issue in {context}. Check internet connection and DNS resolution. Error: {str(e)}"
        ) from e
