"""Command routing: tier resolution, handler registry and built-ins."""

from .builtin import default_registry  # noqa: F401
from .registry import HandlerRegistry  # noqa: F401
from .router import (  # noqa: F401
    CommandCatalog,
    CommandInvocation,
    CommandRouter,
    Tier,
    relay_chat_text,
)

__all__ = [
    "CommandCatalog",
    "CommandInvocation",
    "CommandRouter",
    "HandlerRegistry",
    "Tier",
    "default_registry",
    "relay_chat_text",
]
