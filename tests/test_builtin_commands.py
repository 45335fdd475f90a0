import platform

import pytest

from tests.fixtures.chat_fakes import make_event
from twitch_relay.commands.builtin import SHOUTOUT_TEMPLATE, default_registry
from twitch_relay.commands.router import CommandCatalog, CommandRouter


def _router(session, **catalog):
    return CommandRouter(session, default_registry(), CommandCatalog.build(**catalog))


def test_default_registry_names():
    assert default_registry().names() == [
        "help",
        "join",
        "leave",
        "python",
        "so",
        "stop",
        "version",
    ]


@pytest.mark.asyncio
async def test_help_lists_tiers(fake_chat_session):
    router = _router(
        fake_chat_session,
        public=["help", "version"],
        whitelisted=["so"],
        private=["stop"],
        responses={"ping": "Pong!"},
    )
    reply = await router.route(make_event("!help"))
    assert reply == (
        "[Command Prefix] ! [Public] ping, help, version "
        "[Whitelisted] so [Private] stop"
    )


@pytest.mark.asyncio
async def test_version_reports_interpreter(fake_chat_session):
    router = _router(fake_chat_session, public=["version", "python"])
    expected = f"Current Python version: {platform.python_version()}"
    assert await router.route(make_event("!version")) == expected
    assert await router.route(make_event("!python")) == expected


@pytest.mark.asyncio
async def test_stop_closes_session(fake_chat_session):
    router = _router(fake_chat_session, private=["stop"])
    assert await router.route(make_event("!stop", user="bot")) is None
    assert fake_chat_session.closed is True


@pytest.mark.asyncio
async def test_stop_ignored_for_other_users(fake_chat_session):
    router = _router(fake_chat_session, private=["stop"])
    await router.route(make_event("!stop", user="alice"))
    assert fake_chat_session.closed is False


@pytest.mark.asyncio
async def test_join_and_leave(fake_chat_session):
    router = _router(fake_chat_session, private=["join", "leave"])
    await router.route(make_event("!join dave", user="bot"))
    await router.route(make_event("!join", user="bot"))
    await router.route(make_event("!leave", user="bot", channel="erin"))
    assert fake_chat_session.joined == [("dave", "", "")]
    assert fake_chat_session.left == [("erin", "", "")]


@pytest.mark.asyncio
async def test_shoutout_sends_to_event_channel(fake_chat_session):
    router = _router(fake_chat_session, whitelisted=["so"])
    assert await router.route(make_event("!so @Dave", user="bot")) is None
    assert fake_chat_session.sent == [(SHOUTOUT_TEMPLATE.format(name="Dave"), "bob")]


@pytest.mark.asyncio
async def test_shoutout_without_target_is_noop(fake_chat_session):
    router = _router(fake_chat_session, whitelisted=["so"])
    await router.route(make_event("!so", user="bot"))
    assert fake_chat_session.sent == []
