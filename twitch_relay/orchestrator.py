"""Wires the chat session, command router and Helix client together."""

from __future__ import annotations

import logging

from .api.helix import HelixClient, parse_user_id
from .commands.router import CommandRouter
from .constants import RELAY_REPLY_TAG
from .errors.handling import log_error
from .errors.internal import ConfigurationError, TokenMissingError
from .irc.models import ChatEvent
from .irc.session import Session
from .logs.logger import logger
from .protocols import RelaySink


def relay_reply_text(channel: str, reply: str) -> str:
    return f"{RELAY_REPLY_TAG} #{channel} - {reply}"


def format_reply(user: str, reply: str) -> str:
    return f"@{user}, {reply}"


class Orchestrator:
    def __init__(
        self,
        session: Session,
        router: CommandRouter,
        *,
        helix: HelixClient | None = None,
        relay: RelaySink | None = None,
    ) -> None:
        self.session = session
        self.router = router
        self.helix = helix
        self.relay = relay if relay is not None else router.relay
        self.broadcaster_id: str | None = None
        session.set_message_handler(self.handle_event)

    async def handle_event(self, event: ChatEvent) -> None:
        reply = await self.router.route(event)
        if reply is None:
            return
        if self.relay is not None:
            try:
                await self.relay.relay(event.channel, relay_reply_text(event.channel, reply))
            except Exception as e:  # noqa: BLE001
                log_error("Relay sink failed", e, context={"channel": event.channel})
        if not await self.session.send_message(
            format_reply(event.user, reply), event.channel
        ):
            logger.log_event(
                "command",
                "reply_send_failed",
                level=logging.WARNING,
                user=event.user,
                channel=event.channel,
            )
            return
        logger.log_event(
            "command", "replied", user=event.user, channel=event.channel
        )

    async def resolve_broadcaster_id(self) -> str | None:
        if self.helix is None:
            return None
        try:
            body = await self.helix.get_user(self.session.nick)
        except TokenMissingError as e:
            raise ConfigurationError(
                "Helix rejected the request: OAuth token is missing", data=e.data
            ) from e
        self.broadcaster_id = parse_user_id(body)
        logger.log_event(
            "helix",
            "broadcaster_resolved",
            user=self.session.nick,
            broadcaster_id=self.broadcaster_id,
        )
        return self.broadcaster_id

    async def run(self) -> None:
        """Resolve the bot identity, start the session and wait until it stops.

        Raises:
            ConfigurationError: Missing credentials or an unusable token.
            TransientNetworkError: Reconnect attempts were exhausted.
        """
        await self.resolve_broadcaster_id()
        await self.session.start()
        await self.session.wait_stopped()

    async def stop(self) -> None:
        await self.session.close()
