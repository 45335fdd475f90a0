"""Long-lived chat session: connection ownership, channel map and writes."""

from __future__ import annotations

import asyncio
import codecs
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from ..constants import (
    DEFAULT_COMMAND_PREFIXES,
    IRC_CONNECT_TIMEOUT,
    IRC_PORT,
    IRC_SERVER,
    MAX_RECONNECT_ATTEMPTS,
    RECONNECT_DELAY,
)
from ..errors.internal import ConfigurationError, InternalError
from ..logs.logger import logger
from .connection import IRCConnectionController
from .dispatcher import IRCDispatcher
from .models import Channel, ChatEvent, ConnectionState, RelayTarget, User
from .parser import join_line, part_line, privmsg_line, redact

ConnectionFactory = Callable[
    [str, int], Awaitable[tuple[asyncio.StreamReader, asyncio.StreamWriter]]
]
MessageHandler = Callable[[ChatEvent], Any]


class Session:  # pylint: disable=too-many-instance-attributes
    def __init__(
        self,
        nick: str,
        secret: str,
        channels: Iterable[str] | Mapping[str, Iterable[RelayTarget]] = (),
        prefixes: Iterable[str] = DEFAULT_COMMAND_PREFIXES,
        *,
        server: str = IRC_SERVER,
        port: int = IRC_PORT,
        connect_timeout: float = IRC_CONNECT_TIMEOUT,
        reconnect_delay: float = RECONNECT_DELAY,
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
        connection_factory: ConnectionFactory | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.nick = (nick or "").lower()
        self.secret = secret or ""
        self.prefixes: tuple[str, ...] = tuple(prefixes) or DEFAULT_COMMAND_PREFIXES
        self.server = server
        self.port = port
        self.connect_timeout = connect_timeout
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_attempts = max_reconnect_attempts
        self.connection_factory: ConnectionFactory = (
            connection_factory or asyncio.open_connection
        )
        self.sleep = sleep

        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.buffer = ""
        # Multi-byte characters may straddle read boundaries
        self.decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.running = False
        self.state = ConnectionState.DISCONNECTED
        self.retry_count = 0

        self.channels: dict[str, set[RelayTarget]] = {}
        self.known_channels: dict[str, Channel] = {}
        self.users: dict[str, User] = {}
        self.last_channel: str | None = None
        self.message_handler: MessageHandler | None = None

        self.listen_task: asyncio.Task[None] | None = None
        self.reconnect_task: asyncio.Task[None] | None = None
        self._stopped = asyncio.Event()
        self._fatal_error: InternalError | None = None

        if isinstance(channels, Mapping):
            for name, targets in channels.items():
                key = name.lower().lstrip("#")
                self.channels[key] = set(targets) or {RelayTarget()}
        else:
            for name in channels:
                key = name.lower().lstrip("#")
                if key:
                    self.channels.setdefault(key, set()).add(RelayTarget())
        for name in self.channels:
            self.known_channels[name] = Channel(name=name)

        self.dispatcher = IRCDispatcher(self)
        self.connection_controller = IRCConnectionController(self)

    @property
    def connected(self) -> bool:
        return self.writer is not None

    @property
    def fatal_error(self) -> InternalError | None:
        return self._fatal_error

    def set_state(self, new_state: ConnectionState) -> None:
        if self.state != new_state:
            logger.log_event(
                "irc",
                "state_change",
                level=logging.DEBUG,
                user=self.nick,
                old_state=self.state.name,
                new_state=new_state.name,
            )
            self.state = new_state

    def set_message_handler(self, handler: MessageHandler) -> None:
        self.message_handler = handler

    async def start(self) -> bool:
        if not self.secret:
            raise ConfigurationError("Chat secret is not configured")
        if not self.nick:
            raise ConfigurationError("Chat nickname is not configured")
        self.running = True
        self._stopped.clear()
        self._fatal_error = None
        self.retry_count = 0
        if await self.connection_controller.connect():
            return True
        self.connection_controller.handle_connect_failure()
        return False

    async def write(self, line: str) -> bool:
        writer = self.writer
        shown = redact(line.rstrip("\r\n"))
        if writer is None:
            logger.log_event(
                "irc",
                "write_no_connection",
                level=logging.WARNING,
                user=self.nick,
                line=shown,
            )
            return False
        if not line.endswith("\n"):
            line = f"{line}\n"
        try:
            writer.write(line.encode("utf-8"))
            await writer.drain()
        except (OSError, RuntimeError) as e:
            logger.log_event(
                "irc",
                "write_failed",
                level=logging.WARNING,
                user=self.nick,
                line=shown,
                error=str(e),
            )
            return False
        logger.log_event(
            "irc", "send", level=logging.DEBUG, user=self.nick, line=shown
        )
        return True

    async def join_channel(
        self, name: str, guild_id: str = "", channel_id: str = ""
    ) -> bool:
        name = (name or "").lower().lstrip("#")
        if not name or not self.connected:
            return False
        if name not in self.channels:
            if not await self.write(join_line(name)):
                return False
            self.channels[name] = set()
            logger.log_event("irc", "join_sent", user=self.nick, channel=name)
        self.channels[name].add(RelayTarget(guild_id, channel_id))
        channel = self.known_channels.setdefault(name, Channel(name=name))
        channel.joined = True
        return True

    async def leave_channel(
        self, name: str | None = None, guild_id: str = "", channel_id: str = ""
    ) -> bool:
        name = (name or self.last_channel or "").lower().lstrip("#")
        if not self.connected or name not in self.channels:
            return False
        if guild_id:
            targets = self.channels[name]
            for target in list(targets):
                if target.guild_id == guild_id and (
                    not channel_id or target.channel_id == channel_id
                ):
                    targets.discard(target)
            if targets:
                logger.log_event(
                    "irc",
                    "relay_target_removed",
                    level=logging.DEBUG,
                    user=self.nick,
                    channel=name,
                    remaining=len(targets),
                )
                return True
        del self.channels[name]
        channel = self.known_channels.get(name)
        if channel is not None:
            channel.joined = False
        if self.last_channel == name:
            self.last_channel = None
        logger.log_event("irc", "part_sent", user=self.nick, channel=name)
        return await self.write(part_line(name))

    async def send_message(self, text: str, channel: str | None = None) -> bool:
        target = (channel or self.last_channel or "").lower().lstrip("#")
        if not self.connected or not target:
            logger.log_event(
                "irc",
                "send_unresolved",
                level=logging.WARNING,
                user=self.nick,
                has_connection=self.connected,
            )
            return False
        return await self.write(privmsg_line(target, text))

    def fail(self, error: InternalError) -> None:
        self._fatal_error = error
        self.running = False
        self.set_state(ConnectionState.STOPPED)
        self._stopped.set()

    async def close(self) -> None:
        self.running = False
        current = asyncio.current_task()
        reconnect_task = self.reconnect_task
        self.reconnect_task = None
        if reconnect_task and not reconnect_task.done() and reconnect_task is not current:
            reconnect_task.cancel()
        listen_task = self.listen_task
        self.listen_task = None
        if listen_task and not listen_task.done() and listen_task is not current:
            listen_task.cancel()
            try:
                await listen_task
            except asyncio.CancelledError:
                pass
        if self.writer is not None:
            for name in list(self.channels):
                await self.write(part_line(name))
        self.set_state(ConnectionState.STOPPED)
        await self.connection_controller.drop_connection()
        self._stopped.set()
        logger.log_event("irc", "closed", user=self.nick)

    async def wait_stopped(self) -> None:
        await self._stopped.wait()
        if self._fatal_error is not None:
            raise self._fatal_error
