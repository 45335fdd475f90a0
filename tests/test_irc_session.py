import asyncio
from unittest.mock import AsyncMock

import pytest

from tests.fixtures.chat_fakes import ConnectionScript, FakeReader, FakeWriter, wait_until
from twitch_relay.errors.internal import ConfigurationError
from twitch_relay.irc.models import ConnectionState, RelayTarget
from twitch_relay.irc.session import Session


def _session(*outcomes, channels=("bob",), **kwargs) -> tuple[Session, ConnectionScript]:
    script = ConnectionScript(*outcomes)
    session = Session(
        "Bot",
        "oauth:secret",
        list(channels),
        connection_factory=script,
        sleep=kwargs.pop("sleep", AsyncMock()),
        **kwargs,
    )
    return session, script


@pytest.mark.asyncio
async def test_start_sends_handshake_in_order():
    reader, writer = FakeReader(), FakeWriter()
    session, script = _session((reader, writer), channels=("bob", "#Carol"))
    assert await session.start() is True
    assert script.calls == [("irc.chat.twitch.tv", 6667)]
    assert writer.lines == [
        "PASS oauth:secret",
        "NICK bot",
        "CAP REQ :twitch.tv/membership",
        "JOIN #bob",
        "JOIN #carol",
    ]
    assert session.state is ConnectionState.JOINED
    assert session.known_channels["bob"].joined is True
    await session.close()


@pytest.mark.asyncio
async def test_start_requires_credentials():
    session = Session("bot", "", ["bob"])
    with pytest.raises(ConfigurationError):
        await session.start()
    session = Session("", "oauth:x", ["bob"])
    with pytest.raises(ConfigurationError):
        await session.start()


@pytest.mark.asyncio
async def test_write_without_connection_returns_false():
    session = Session("bot", "oauth:x")
    assert await session.write("PRIVMSG #bob :hi") is False
    assert await session.send_message("hi", "bob") is False


@pytest.mark.asyncio
async def test_write_failure_returns_false():
    reader, writer = FakeReader(), FakeWriter()
    session, _ = _session((reader, writer))
    await session.start()
    writer.fail_writes = True
    assert await session.write("PRIVMSG #bob :hi") is False
    await session.close()


@pytest.mark.asyncio
async def test_pass_line_is_redacted_in_logs(caplog):
    reader, writer = FakeReader(), FakeWriter()
    session, _ = _session((reader, writer))
    with caplog.at_level("DEBUG"):
        await session.start()
    assert "oauth:secret" not in caplog.text
    await session.close()


@pytest.mark.asyncio
async def test_heartbeat_answered_over_live_connection():
    reader, writer = FakeReader(), FakeWriter()
    session, _ = _session((reader, writer))
    await session.start()
    reader.feed("PING :tmi.twitch.tv\r\n")
    await wait_until(lambda: "PONG :tmi.twitch.tv" in writer.lines)
    await session.close()


@pytest.mark.asyncio
async def test_join_then_leave_emits_single_part():
    reader, writer = FakeReader(), FakeWriter()
    session, _ = _session((reader, writer), channels=())
    await session.start()
    assert await session.join_channel("Dave") is True
    assert "dave" in session.channels
    assert await session.leave_channel("dave") is True
    assert "dave" not in session.channels
    assert writer.lines.count("JOIN #dave") == 1
    assert writer.lines.count("PART #dave") == 1
    await session.close()


@pytest.mark.asyncio
async def test_join_is_idempotent_on_wire_and_targets():
    reader, writer = FakeReader(), FakeWriter()
    session, _ = _session((reader, writer), channels=())
    await session.start()
    await session.join_channel("dave", "g1", "c1")
    await session.join_channel("dave", "g1", "c1")
    await session.join_channel("dave", "g2", "c2")
    assert writer.lines.count("JOIN #dave") == 1
    assert session.channels["dave"] == {RelayTarget("g1", "c1"), RelayTarget("g2", "c2")}
    await session.close()


@pytest.mark.asyncio
async def test_leave_relay_target_parts_only_when_none_remain():
    reader, writer = FakeReader(), FakeWriter()
    session, _ = _session((reader, writer), channels=())
    await session.start()
    await session.join_channel("dave", "g1", "c1")
    await session.join_channel("dave", "g2", "c2")
    assert await session.leave_channel("dave", "g1") is True
    assert "PART #dave" not in writer.lines
    assert session.channels["dave"] == {RelayTarget("g2", "c2")}
    assert await session.leave_channel("dave", "g2", "c2") is True
    assert writer.lines.count("PART #dave") == 1
    assert "dave" not in session.channels
    await session.close()


@pytest.mark.asyncio
async def test_leave_unknown_channel_returns_false():
    reader, writer = FakeReader(), FakeWriter()
    session, _ = _session((reader, writer), channels=())
    await session.start()
    assert await session.leave_channel("nobody") is False
    assert not any(line.startswith("PART") for line in writer.lines)
    await session.close()


@pytest.mark.asyncio
async def test_join_without_connection_fails():
    session = Session("bot", "oauth:x")
    assert await session.join_channel("dave") is False
    assert "dave" not in session.channels


@pytest.mark.asyncio
async def test_send_message_resolves_last_channel():
    reader, writer = FakeReader(), FakeWriter()
    session, _ = _session((reader, writer))
    await session.start()
    assert await session.send_message("hello") is False  # nothing observed yet
    reader.feed(":alice!a@h PRIVMSG #bob :hi\r\n")
    await wait_until(lambda: session.last_channel == "bob")
    assert await session.send_message("hello") is True
    assert await session.send_message("direct", "#Erin") is True
    assert writer.lines[-2:] == ["PRIVMSG #bob :hello", "PRIVMSG #erin :direct"]
    await session.close()


@pytest.mark.asyncio
async def test_close_parts_channels_and_stops():
    reader, writer = FakeReader(), FakeWriter()
    session, _ = _session((reader, writer))
    await session.start()
    await session.close()
    assert "PART #bob" in writer.lines
    assert writer.closed is True
    assert session.state is ConnectionState.STOPPED
    assert session.writer is None
    await asyncio.wait_for(session.wait_stopped(), 1)


@pytest.mark.asyncio
async def test_dropped_connection_reconnects_with_fresh_handle():
    reader1, writer1 = FakeReader(), FakeWriter()
    reader2, writer2 = FakeReader(), FakeWriter()
    sleep = AsyncMock()
    session, script = _session((reader1, writer1), (reader2, writer2), sleep=sleep)
    await session.start()
    reader1.feed_eof()
    await wait_until(
        lambda: session.state is ConnectionState.JOINED and session.reader is reader2
    )
    assert "JOIN #bob" in writer2.lines
    assert writer1.closed is True
    assert session.writer is writer2
    assert session.retry_count == 0
    sleep.assert_awaited_once_with(session.reconnect_delay)
    assert len(script.calls) == 2
    await session.close()


@pytest.mark.asyncio
async def test_close_cancels_pending_reconnect():
    reader, writer = FakeReader(), FakeWriter()
    gate = asyncio.Event()

    async def slow_sleep(_delay: float) -> None:
        await gate.wait()

    session, script = _session((reader, writer), sleep=slow_sleep)
    await session.start()
    reader.feed_eof()
    await wait_until(lambda: session.state is ConnectionState.RECONNECTING)
    pending = session.reconnect_task
    await session.close()
    assert pending is not None
    await asyncio.gather(pending, return_exceptions=True)
    gate.set()
    assert pending.cancelled()
    assert len(script.calls) == 1
    assert session.state is ConnectionState.STOPPED


@pytest.mark.asyncio
async def test_leave_without_connection_keeps_channel():
    session = Session("bot", "oauth:x", ["bob"])
    session.last_channel = "bob"
    assert await session.leave_channel("bob") is False
    assert await session.leave_channel() is False
    assert session.channels == {"bob": {RelayTarget()}}
    assert session.last_channel == "bob"


@pytest.mark.asyncio
async def test_multibyte_character_split_across_reads():
    reader, writer = FakeReader(), FakeWriter()
    session, _ = _session((reader, writer))
    texts: list[str] = []
    session.set_message_handler(lambda event: texts.append(event.text))
    await session.start()
    data = ":alice!alice@x PRIVMSG #bob :héllo\r\n".encode("utf-8")
    cut = data.index("é".encode("utf-8")) + 1
    reader.feed_bytes(data[:cut])
    reader.feed_bytes(data[cut:])
    await wait_until(lambda: texts)
    assert texts == ["héllo"]
    await session.close()
