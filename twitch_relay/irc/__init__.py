"""Chat (TMI) subsystem package.

Contains line parsing, inbound dispatch, connection/reconnect handling and
the session object that owns the connection.
"""

from .connection import IRCConnectionController  # noqa: F401
from .dispatcher import IRCDispatcher  # noqa: F401
from .models import (  # noqa: F401
    Channel,
    ChatEvent,
    ConnectionState,
    RelayTarget,
    User,
)
from .parser import LineKind, classify  # noqa: F401
from .session import Session  # noqa: F401

__all__ = [
    "Channel",
    "ChatEvent",
    "ConnectionState",
    "IRCConnectionController",
    "IRCDispatcher",
    "LineKind",
    "RelayTarget",
    "Session",
    "User",
    "classify",
]
