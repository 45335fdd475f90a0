"""Tests for the structured event logger."""

import logging

import pytest

from twitch_relay.logs.logger import BotLogger


@pytest.fixture
def bot_logger():
    return BotLogger("twitch_relay.test")


def test_concise_message_uses_template(bot_logger, caplog):
    with caplog.at_level(logging.INFO, logger="twitch_relay.test"):
        bot_logger.log_event("irc", "connect_start", user="bot", server="irc.example", port=6667)
    record = caplog.records[-1]
    assert record.levelno == logging.INFO
    assert record.getMessage() == f"[{'bot'.ljust(24)}] Connecting to irc.example:6667"


def test_prefix_includes_channel(bot_logger, caplog):
    with caplog.at_level(logging.INFO, logger="twitch_relay.test"):
        bot_logger.log_event("irc", "join_sent", user="bot", channel="bob")
    assert caplog.records[-1].getMessage().startswith(f"[{'bot#bob'.ljust(24)}]")


def test_prefix_defaults_to_system(bot_logger, caplog):
    with caplog.at_level(logging.INFO, logger="twitch_relay.test"):
        bot_logger.log_event("token", "swapped", expires_at=None)
    assert caplog.records[-1].getMessage() == f"[{'system'.ljust(24)}] New credential in use"


def test_unknown_event_derives_text(bot_logger, caplog):
    with caplog.at_level(logging.INFO, logger="twitch_relay.test"):
        bot_logger.log_event("custom_area", "did_thing")
    assert caplog.records[-1].getMessage().endswith("custom area: did thing")


def test_missing_placeholder_falls_back_to_raw_template(bot_logger, caplog):
    with caplog.at_level(logging.INFO, logger="twitch_relay.test"):
        bot_logger.log_event("irc", "connect_start")
    assert caplog.records[-1].getMessage().endswith("Connecting to {server}:{port}")


def test_explicit_human_text_and_level(bot_logger, caplog):
    with caplog.at_level(logging.DEBUG, logger="twitch_relay.test"):
        bot_logger.log_event("irc", "raw", level=logging.DEBUG, human="custom text")
    record = caplog.records[-1]
    assert record.levelno == logging.DEBUG
    assert record.getMessage().endswith("custom text")


def test_debug_mode_appends_context(bot_logger, caplog, monkeypatch):
    monkeypatch.setenv("DEBUG", "1")
    with caplog.at_level(logging.INFO, logger="twitch_relay.test"):
        bot_logger.log_event("helix", "response", method="GET", endpoint="users", status=200)
    message = caplog.records[-1].getMessage()
    assert message.startswith("helix_response")
    assert "GET users -> HTTP 200" in message
    assert message.endswith("(method=GET, endpoint=users, status=200)")


def test_debug_mode_truncates_long_event_names(bot_logger, caplog, monkeypatch):
    monkeypatch.setenv("DEBUG", "true")
    with caplog.at_level(logging.INFO, logger="twitch_relay.test"):
        bot_logger.log_event("a_very_long_domain_name", "and_an_even_longer_action")
    assert caplog.records[-1].getMessage().split(" ", 1)[0].endswith("…")
