"""Relay sinks forwarding chat traffic to external destinations."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any

from .errors.handling import log_error
from .irc.models import RelayTarget
from .logs.logger import logger

PostCallable = Callable[[RelayTarget, str], Any]


class NullRelay:
    """Relay used when relaying is disabled. Accepts and drops everything."""

    async def relay(self, channel: str, text: str) -> None:
        return None


class ChannelRelay:
    """Fans text out to every relay target recorded for a channel.

    ``targets`` is the live channel map of the session, so joins and leaves
    are reflected without re-registration. Plain memberships (empty target)
    are skipped. A failing destination never prevents delivery to the rest.
    """

    def __init__(
        self, targets: Mapping[str, set[RelayTarget]], post: PostCallable
    ) -> None:
        self.targets = targets
        self._post = post

    async def relay(self, channel: str, text: str) -> None:
        for target in list(self.targets.get(channel.lower(), ())):
            if not target.is_relay:
                continue
            try:
                result = self._post(target, text)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:  # noqa: BLE001
                log_error(
                    "Relay post failed",
                    e,
                    context={
                        "channel": channel,
                        "guild_id": target.guild_id,
                        "channel_id": target.channel_id,
                    },
                )
                continue
            logger.log_event(
                "relay",
                "posted",
                level=logging.DEBUG,
                channel=channel,
                guild_id=target.guild_id,
            )
