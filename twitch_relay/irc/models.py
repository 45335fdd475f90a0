"""Shared chat session data models."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum, auto


class ConnectionState(Enum):
    DISCONNECTED = auto()
    CONNECTING = auto()
    AUTHENTICATING = auto()
    JOINED = auto()
    RECONNECTING = auto()
    STOPPED = auto()


@dataclass(frozen=True, slots=True)
class RelayTarget:
    """External relay destination bound to a chat channel.

    The empty target marks a plain membership with nothing to relay to.
    """

    guild_id: str = ""
    channel_id: str = ""

    @property
    def is_relay(self) -> bool:
        return bool(self.guild_id)


@dataclass(slots=True)
class Channel:
    name: str
    id: str | None = None
    joined: bool = False


@dataclass(slots=True)
class User:
    name: str
    display_name: str | None = None
    last_seen: float = field(default_factory=time.time)
    last_channel: str | None = None
    last_message: str | None = None

    def touch(self, channel: str, message: str, when: float | None = None) -> None:
        self.last_seen = when if when is not None else time.time()
        self.last_channel = channel
        self.last_message = message


@dataclass(frozen=True, slots=True)
class ChatEvent:
    """One inbound chat message, carrying sender and channel explicitly."""

    raw: str
    user: str
    channel: str
    text: str
    timestamp: float = field(default_factory=time.time)
