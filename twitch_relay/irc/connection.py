"""Connection, handshake and reconnection logic for the chat session."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ..constants import IRC_MEMBERSHIP_CAPABILITY, READ_CHUNK_SIZE
from ..errors.internal import TransientNetworkError
from ..logs.logger import logger
from .models import Channel, ConnectionState
from .parser import cap_req_line, join_line, nick_line, pass_line

if TYPE_CHECKING:  # pragma: no cover
    from .session import Session


class IRCConnectionController:
    """Opens connections and schedules reconnects for a host ``Session``.

    Retry accounting: a successful connect resets ``retry_count`` to 0, each
    failed connect increments it, and a failure observed once the count has
    reached ``max_reconnect_attempts`` is fatal. A dropped connection is
    rescheduled without touching the count.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    async def connect(self) -> bool:
        session = self.session
        session.set_state(ConnectionState.CONNECTING)
        logger.log_event(
            "irc",
            "connect_start",
            user=session.nick,
            server=session.server,
            port=session.port,
        )
        try:
            reader, writer = await asyncio.wait_for(
                session.connection_factory(session.server, session.port),
                timeout=session.connect_timeout,
            )
        except TimeoutError:
            logger.log_event(
                "irc",
                "connect_timeout",
                level=logging.ERROR,
                user=session.nick,
                timeout=session.connect_timeout,
            )
            session.set_state(ConnectionState.DISCONNECTED)
            return False
        except OSError as e:
            logger.log_event(
                "irc",
                "connect_network_error",
                level=logging.ERROR,
                user=session.nick,
                error=str(e),
            )
            session.set_state(ConnectionState.DISCONNECTED)
            return False

        # Connection is replaced wholesale; nothing from the old one survives
        session.reader = reader
        session.writer = writer
        session.buffer = ""
        session.decoder.reset()
        session.set_state(ConnectionState.AUTHENTICATING)
        if not await self._handshake():
            await self.drop_connection()
            return False

        # No explicit acknowledgement exists; JOINED is entered optimistically
        session.set_state(ConnectionState.JOINED)
        session.retry_count = 0
        session.listen_task = asyncio.create_task(self.listen(reader))
        logger.log_event(
            "irc",
            "connect_success",
            user=session.nick,
            channels=len(session.channels),
        )
        return True

    async def _handshake(self) -> bool:
        session = self.session
        lines = [
            pass_line(session.secret),
            nick_line(session.nick),
            cap_req_line(IRC_MEMBERSHIP_CAPABILITY),
        ]
        for line in lines:
            if not await session.write(line):
                return False
        logger.log_event("irc", "auth_sent", level=logging.DEBUG, user=session.nick)
        for name in list(session.channels):
            if not await session.write(join_line(name)):
                return False
            channel = session.known_channels.setdefault(name, Channel(name=name))
            channel.joined = True
            logger.log_event("irc", "join_sent", user=session.nick, channel=name)
        return True

    async def listen(self, reader: asyncio.StreamReader) -> None:
        session = self.session
        try:
            while session.running and session.reader is reader:
                data = await reader.read(READ_CHUNK_SIZE)
                if not data:
                    logger.log_event(
                        "irc",
                        "connection_lost",
                        level=logging.WARNING,
                        user=session.nick,
                    )
                    break
                session.buffer = await session.dispatcher.process_incoming_data(
                    session.buffer, session.decoder.decode(data)
                )
        except asyncio.CancelledError:
            raise
        except OSError as e:
            logger.log_event(
                "irc",
                "read_error",
                level=logging.WARNING,
                user=session.nick,
                error=str(e),
            )
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "irc",
                "listener_error",
                level=logging.ERROR,
                user=session.nick,
                error=str(e),
                error_type=type(e).__name__,
            )
        if session.reader is reader:
            await self.on_connection_lost()

    async def on_connection_lost(self) -> None:
        session = self.session
        await self.drop_connection()
        if session.running:
            self.schedule_reconnect()

    async def drop_connection(self) -> None:
        session = self.session
        writer = session.writer
        session.reader = None
        session.writer = None
        session.buffer = ""
        session.decoder.reset()
        for channel in session.known_channels.values():
            channel.joined = False
        if writer is not None:
            try:
                writer.close()
                await writer.wait_closed()
            except (OSError, RuntimeError) as e:
                logger.log_event(
                    "irc",
                    "close_error",
                    level=logging.DEBUG,
                    user=session.nick,
                    error=str(e),
                )
        if session.state is not ConnectionState.STOPPED:
            session.set_state(ConnectionState.DISCONNECTED)

    def handle_connect_failure(self) -> None:
        session = self.session
        if not session.running:
            return
        if session.retry_count >= session.max_reconnect_attempts:
            error = TransientNetworkError(
                f"Giving up after {session.retry_count} reconnect attempts",
                data={"server": session.server, "port": session.port},
            )
            logger.log_event(
                "irc",
                "reconnect_exhausted",
                level=logging.ERROR,
                user=session.nick,
                attempts=session.retry_count,
            )
            session.fail(error)
            return
        session.retry_count += 1
        self.schedule_reconnect()

    def schedule_reconnect(self) -> None:
        session = self.session
        session.set_state(ConnectionState.RECONNECTING)
        logger.log_event(
            "irc",
            "reconnect_scheduled",
            level=logging.WARNING,
            user=session.nick,
            delay=session.reconnect_delay,
            attempt=session.retry_count,
        )
        session.reconnect_task = asyncio.create_task(self._reconnect_after_delay())

    async def _reconnect_after_delay(self) -> None:
        session = self.session
        await session.sleep(session.reconnect_delay)
        if not session.running:
            return
        if await self.connect():
            logger.log_event("irc", "reconnect_success", user=session.nick)
            return
        self.handle_connect_failure()
