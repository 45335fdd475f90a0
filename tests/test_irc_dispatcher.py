import asyncio

import pytest

from twitch_relay.irc.dispatcher import IRCDispatcher
from twitch_relay.irc.models import ChatEvent
from twitch_relay.irc.session import Session


class DummySession(Session):
    def __init__(self) -> None:  # keep base init
        super().__init__("tester", "oauth:x", ["mychan"])
        self.sent: list[str] = []

    async def write(self, line: str) -> bool:  # capture instead of network
        self.sent.append(line)
        return True


@pytest.mark.asyncio
async def test_ping_pong_response():
    session = DummySession()
    disp = IRCDispatcher(session)
    buf = await disp.process_incoming_data("", "PING :tmi.twitch.tv\r\n")
    assert buf == ""
    assert session.sent == ["PONG :tmi.twitch.tv"]


@pytest.mark.asyncio
async def test_privmsg_builds_event_and_invokes_handler():
    session = DummySession()
    events: list[ChatEvent] = []

    async def handler(event: ChatEvent) -> None:
        events.append(event)
        await asyncio.sleep(0)

    session.set_message_handler(handler)
    disp = IRCDispatcher(session)
    raw = ":Alice!alice@alice.tmi.twitch.tv PRIVMSG #MyChan :hello world\r\n"
    await disp.process_incoming_data("", raw)
    assert len(events) == 1
    event = events[0]
    assert (event.user, event.channel, event.text) == ("alice", "mychan", "hello world")
    assert event.raw == raw.rstrip("\r\n")


@pytest.mark.asyncio
async def test_privmsg_updates_user_and_channel_caches():
    session = DummySession()
    disp = IRCDispatcher(session)
    await disp.process_incoming_data(
        "", ":alice!a@h PRIVMSG #other :first\r\n:alice!a@h PRIVMSG #mychan :second\r\n"
    )
    user = session.users["alice"]
    assert user.last_channel == "mychan"
    assert user.last_message == "second"
    assert session.last_channel == "mychan"
    assert "other" in session.known_channels
    assert session.known_channels["other"].joined is False


@pytest.mark.asyncio
async def test_partial_lines_are_buffered_in_order():
    session = DummySession()
    seen: list[str] = []
    session.set_message_handler(lambda event: seen.append(event.text))
    disp = IRCDispatcher(session)
    buf = await disp.process_incoming_data("", ":a!a@h PRIVMSG #c :one\r\n:a!a@h PRI")
    assert seen == ["one"]
    assert buf == ":a!a@h PRI"
    buf = await disp.process_incoming_data(buf, "VMSG #c :two\r\nPING :tmi.twitch.tv\r\n")
    assert buf == ""
    assert seen == ["one", "two"]
    assert session.sent == ["PONG :tmi.twitch.tv"]


@pytest.mark.asyncio
async def test_other_lines_are_dropped():
    session = DummySession()
    seen: list[ChatEvent] = []
    session.set_message_handler(seen.append)
    disp = IRCDispatcher(session)
    await disp.process_incoming_data(
        "", ":tmi.twitch.tv 001 tester :Welcome, GLHF!\r\n:tester!t@h JOIN #mychan\r\n"
    )
    assert seen == []
    assert session.sent == []


@pytest.mark.asyncio
async def test_tagged_privmsg_is_parsed():
    session = DummySession()
    seen: list[ChatEvent] = []
    session.set_message_handler(seen.append)
    disp = IRCDispatcher(session)
    await disp.process_incoming_data(
        "", "@color=#FF0000;display-name=Alice :alice!a@h PRIVMSG #c :tagged\r\n"
    )
    assert [e.text for e in seen] == ["tagged"]


@pytest.mark.asyncio
async def test_message_handler_exception_logged_not_propagated():
    session = DummySession()

    async def bad_handler(event: ChatEvent) -> None:  # noqa: ARG001
        raise RuntimeError("boom")

    session.set_message_handler(bad_handler)
    disp = IRCDispatcher(session)
    buf = await disp.process_incoming_data(
        "", ":a!a@h PRIVMSG #c :x\r\nPING :tmi.twitch.tv\r\n"
    )
    assert buf == ""
    # later lines still processed
    assert session.sent == ["PONG :tmi.twitch.tv"]
