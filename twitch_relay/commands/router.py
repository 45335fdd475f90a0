"""Tiered command resolution for inbound chat events.

Tiers are evaluated in a fixed order and each one runs independently: a
later tier's non-``None`` result replaces the earlier candidate (last writer
wins). Order: public, whitelisted, private, canned responses.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from ..constants import RELAY_CHAT_TAG
from ..errors.handling import log_error
from ..irc.models import ChatEvent
from ..logs.logger import logger
from ..protocols import ChatSession, RelaySink
from .registry import HandlerRegistry


class Tier(str, Enum):
    PUBLIC = "public"
    WHITELISTED = "whitelisted"
    PRIVATE = "private"
    RESPONSE = "response"
    NONE = "none"


@dataclass(frozen=True)
class CommandCatalog:
    """Command names configured for each tier plus canned responses."""

    public: tuple[str, ...] = ()
    whitelisted: tuple[str, ...] = ()
    private: tuple[str, ...] = ()
    responses: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        public: Iterable[str] = (),
        whitelisted: Iterable[str] = (),
        private: Iterable[str] = (),
        responses: Mapping[str, str] | None = None,
    ) -> CommandCatalog:
        return cls(
            public=tuple(n.casefold() for n in public),
            whitelisted=tuple(n.casefold() for n in whitelisted),
            private=tuple(n.casefold() for n in private),
            responses={k.casefold(): v for k, v in (responses or {}).items()},
        )


@dataclass
class CommandInvocation:
    name: str
    args: list[str]
    event: ChatEvent
    prefix: str = ""
    tier: Tier = Tier.NONE
    reply: str | None = None
    catalog: CommandCatalog = field(default_factory=CommandCatalog)


def relay_chat_text(event: ChatEvent) -> str:
    return f"{RELAY_CHAT_TAG} #{event.channel} - {event.user}: {event.text}"


class CommandRouter:
    def __init__(
        self,
        session: ChatSession,
        registry: HandlerRegistry,
        catalog: CommandCatalog | None = None,
        *,
        whitelist: Iterable[str] = (),
        prefixes: Iterable[str] | None = None,
        relay: RelaySink | None = None,
    ) -> None:
        self.session = session
        self.registry = registry
        self.catalog = catalog or CommandCatalog()
        self.whitelist = {w.lower() for w in whitelist}
        self._prefixes = tuple(prefixes) if prefixes is not None else None
        self.relay = relay

    @property
    def prefixes(self) -> tuple[str, ...]:
        if self._prefixes is not None:
            return self._prefixes
        return tuple(self.session.prefixes)

    def parse(self, text: str) -> tuple[str, str, list[str]] | None:
        """Split ``text`` into (prefix, command name, args) if it is a command."""
        for prefix in self.prefixes:
            if prefix and text.startswith(prefix):
                tokens = text[len(prefix) :].split()
                if not tokens:
                    return None
                return prefix, tokens[0].casefold(), tokens[1:]
        return None

    async def route(self, event: ChatEvent) -> str | None:
        await self._offer_to_relay(event)
        parsed = self.parse(event.text)
        if parsed is None:
            return None
        prefix, name, args = parsed
        invocation = CommandInvocation(
            name=name, args=args, event=event, prefix=prefix, catalog=self.catalog
        )
        logger.log_event(
            "command",
            "received",
            level=logging.DEBUG,
            user=event.user,
            channel=event.channel,
            command=name,
            args=len(args),
        )
        sender = event.user.lower()
        bot = self.session.nick.lower()

        if name in self.catalog.public:
            await self._run_tier(invocation, Tier.PUBLIC)
        if name in self.catalog.whitelisted and (
            sender in self.whitelist or sender == bot
        ):
            await self._run_tier(invocation, Tier.WHITELISTED)
        if name in self.catalog.private and sender == bot:
            await self._run_tier(invocation, Tier.PRIVATE)
        canned = self.catalog.responses.get(name)
        if canned is not None:
            invocation.tier = Tier.RESPONSE
            invocation.reply = canned

        if invocation.reply is not None:
            logger.log_event(
                "command",
                "resolved",
                user=event.user,
                channel=event.channel,
                command=name,
                tier=invocation.tier.value,
            )
        return invocation.reply

    async def _offer_to_relay(self, event: ChatEvent) -> None:
        if self.relay is None:
            return
        try:
            await self.relay.relay(event.channel, relay_chat_text(event))
        except Exception as e:  # noqa: BLE001
            log_error("Relay sink failed", e, context={"channel": event.channel})

    async def _run_tier(self, invocation: CommandInvocation, tier: Tier) -> None:
        handler = self.registry.get(invocation.name)
        if handler is None:
            logger.log_event(
                "command",
                "no_handler",
                level=logging.DEBUG,
                command=invocation.name,
                tier=tier.value,
            )
            return
        previous = invocation.tier
        invocation.tier = tier
        try:
            result = handler(invocation, self.session)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:  # noqa: BLE001
            invocation.tier = previous
            log_error(
                f"Command handler '{invocation.name}' failed",
                e,
                context={"tier": tier.value, "channel": invocation.event.channel},
            )
            return
        if result is not None:
            invocation.reply = str(result)
        else:
            invocation.tier = previous
