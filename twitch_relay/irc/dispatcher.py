"""Inbound line dispatch for the chat session."""

from __future__ import annotations

import inspect
import logging
import time
from typing import TYPE_CHECKING

from ..logs.logger import logger
from .models import Channel, ChatEvent, User
from .parser import (
    LineKind,
    classify,
    extract_payload,
    parse_channel_tag,
    parse_sender,
    pong_line,
    strip_tags,
)

if TYPE_CHECKING:  # pragma: no cover
    from .session import Session


class IRCDispatcher:
    def __init__(self, session: Session):
        self.session = session

    async def process_incoming_data(self, buffer: str, new_data: str) -> str:
        """Append ``new_data`` and handle every complete line, in order.

        Returns the trailing partial line to be carried into the next call.
        """
        buffer += new_data
        while "\n" in buffer:
            line, buffer = buffer.split("\n", 1)
            line = line.rstrip("\r")
            if line.strip():
                await self.handle_line(line)
        return buffer

    async def handle_line(self, raw_line: str) -> None:
        line = strip_tags(raw_line)
        kind = classify(line)
        if kind is LineKind.HEARTBEAT:
            await self._handle_ping()
            return
        if kind is LineKind.CHAT:
            await self._handle_privmsg(raw_line, line)
            return
        logger.log_event(
            "irc",
            "raw",
            level=logging.DEBUG,
            user=self.session.nick,
            raw=line,
        )

    async def _handle_ping(self) -> None:
        if not await self.session.write(pong_line()):
            logger.log_event(
                "irc", "pong_failed", level=logging.WARNING, user=self.session.nick
            )

    async def _handle_privmsg(self, raw_line: str, line: str) -> None:
        sender = parse_sender(line)
        channel = parse_channel_tag(line)
        if not sender or not channel:
            logger.log_event(
                "irc",
                "malformed_privmsg",
                level=logging.DEBUG,
                user=self.session.nick,
                raw=line,
            )
            return
        sender = sender.lower()
        channel = channel.lower()
        text = extract_payload(line)
        now = time.time()
        self._remember(sender, channel, text, now)
        logger.log_event(
            "irc",
            "privmsg",
            level=logging.DEBUG,
            user=self.session.nick,
            human=f"{sender}: {text}",
            author=sender,
            channel=channel,
        )
        event = ChatEvent(
            raw=raw_line, user=sender, channel=channel, text=text, timestamp=now
        )
        await self._process_message_handler(event)

    def _remember(self, sender: str, channel: str, text: str, when: float) -> None:
        session = self.session
        if channel not in session.known_channels:
            session.known_channels[channel] = Channel(
                name=channel, joined=channel in session.channels
            )
        user = session.users.get(sender)
        if user is None:
            user = User(name=sender, last_seen=when)
            session.users[sender] = user
        user.touch(channel, text, when)
        session.last_channel = channel

    async def _process_message_handler(self, event: ChatEvent) -> None:
        handler = self.session.message_handler
        if not handler:
            logger.log_event(
                "irc",
                "no_message_handler",
                level=logging.DEBUG,
                user=self.session.nick,
            )
            return
        try:
            maybe = handler(event)
            if inspect.isawaitable(maybe):
                await maybe
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "irc",
                "message_handler_error",
                level=logging.ERROR,
                user=self.session.nick,
                channel=event.channel,
                error=str(e),
                error_type=type(e).__name__,
            )
