"""Protocol definitions for relay components.

Routers and command handlers depend on these interfaces rather than on the
concrete ``Session`` so tests can substitute lightweight doubles.
"""

from __future__ import annotations

from collections.abc import Awaitable, Mapping
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:  # pragma: no cover
    from .commands.router import CommandInvocation


class ChatSession(Protocol):
    """What command handlers and the orchestrator need from a chat session."""

    nick: str
    prefixes: tuple[str, ...]
    channels: dict[str, Any]

    async def write(self, line: str) -> bool:
        """Send one raw protocol line."""
        ...

    async def join_channel(
        self, name: str, guild_id: str = "", channel_id: str = ""
    ) -> bool:
        """Join ``name`` and record the relay target."""
        ...

    async def leave_channel(
        self, name: str | None = None, guild_id: str = "", channel_id: str = ""
    ) -> bool:
        """Drop a relay target, parting once none remain."""
        ...

    async def send_message(self, text: str, channel: str | None = None) -> bool:
        """Send a chat message to ``channel`` (or the last active channel)."""
        ...

    async def close(self) -> None:
        """Stop the session for good."""
        ...


class RelaySink(Protocol):
    """Receives chat traffic destined for an external relay."""

    async def relay(self, channel: str, text: str) -> None:
        """Forward ``text`` observed in ``channel``. May silently no-op."""
        ...


class SecretStore(Protocol):
    """Named string values that survive process restarts."""

    def get(self, name: str) -> str | None: ...

    def set(self, name: str, value: str) -> None: ...

    def set_many(self, updates: Mapping[str, str]) -> None: ...


class CommandHandler(Protocol):
    def __call__(
        self, invocation: CommandInvocation, session: ChatSession
    ) -> str | None | Awaitable[str | None]: ...
