"""Built-in chat command handlers."""

from __future__ import annotations

import logging
import platform

from ..logs.logger import logger
from ..protocols import ChatSession
from .registry import HandlerRegistry
from .router import CommandInvocation

SHOUTOUT_TEMPLATE = (
    "Hey, go check out {name} at https://www.twitch.tv/{name} "
    "They are good peeples! Pretty good. Pretty good!"
)


def help_command(invocation: CommandInvocation, session: ChatSession) -> str:
    catalog = invocation.catalog
    sections: list[str] = []
    if session.prefixes:
        sections.append(f"[Command Prefix] {', '.join(session.prefixes)}")
    public = [*catalog.responses, *catalog.public]
    if public:
        sections.append(f"[Public] {', '.join(public)}")
    if catalog.whitelisted:
        sections.append(f"[Whitelisted] {', '.join(catalog.whitelisted)}")
    if catalog.private:
        sections.append(f"[Private] {', '.join(catalog.private)}")
    return " ".join(sections)


def version_command(invocation: CommandInvocation, session: ChatSession) -> str:
    return f"Current Python version: {platform.python_version()}"


async def stop_command(invocation: CommandInvocation, session: ChatSession) -> None:
    logger.log_event(
        "command", "stop", level=logging.WARNING, user=invocation.event.user
    )
    await session.close()


async def join_command(invocation: CommandInvocation, session: ChatSession) -> None:
    if not invocation.args:
        return None
    await session.join_channel(invocation.args[0])
    return None


async def leave_command(invocation: CommandInvocation, session: ChatSession) -> None:
    await session.leave_channel(invocation.event.channel)


async def shoutout_command(
    invocation: CommandInvocation, session: ChatSession
) -> None:
    if not invocation.args:
        return None
    name = invocation.args[0].lstrip("@")
    await session.send_message(
        SHOUTOUT_TEMPLATE.format(name=name), invocation.event.channel
    )
    return None


def default_registry() -> HandlerRegistry:
    registry = HandlerRegistry()
    registry.register("help", help_command)
    registry.register("version", version_command)
    registry.register("python", version_command)
    registry.register("stop", stop_command)
    registry.register("join", join_command)
    registry.register("leave", leave_command)
    registry.register("so", shoutout_command)
    return registry
