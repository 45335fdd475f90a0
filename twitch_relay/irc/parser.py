"""Chat line parsing and formatting utilities.

Every function here is pure and tolerates malformed input: lookups return
``None`` or ``""`` rather than raising.
"""

from __future__ import annotations

from enum import Enum, auto

from ..constants import IRC_MEMBERSHIP_CAPABILITY, IRC_SERVER_LITERAL

HEARTBEAT_LINE = f"PING :{IRC_SERVER_LITERAL}"
REDACTED_COMMANDS = ("PASS",)


class LineKind(Enum):
    HEARTBEAT = auto()
    CHAT = auto()
    OTHER = auto()


def strip_tags(line: str) -> str:
    """Drop a leading IRCv3 ``@key=value;...`` block if present."""
    if line.startswith("@"):
        if " " not in line:
            return ""
        return line.split(" ", 1)[1]
    return line


def parse_sender(line: str) -> str | None:
    """Return the nick between the leading ``:`` and the first ``!``."""
    if not line.startswith(":"):
        return None
    end = line.find("!")
    if end <= 1:
        return None
    nick = line[1:end]
    # A space before the bang means the prefix carried no user part
    if " " in nick:
        return None
    return nick


def parse_channel_tag(line: str) -> str | None:
    for token in line.split():
        if token.startswith("#"):
            name = token[1:]
            return name or None
    return None


def extract_payload(line: str, keyword: str = "PRIVMSG") -> str:
    """Return the message text that follows ``keyword`` and the channel tag."""
    idx = line.find(keyword)
    if idx < 0:
        return ""
    rest = line[idx + len(keyword) :].lstrip()
    if rest.startswith("#"):
        parts = rest.split(None, 1)
        rest = parts[1] if len(parts) > 1 else ""
    if rest.startswith(":"):
        rest = rest[1:]
    return rest.strip()


def classify(line: str) -> LineKind:
    if line.strip() == HEARTBEAT_LINE:
        return LineKind.HEARTBEAT
    if "PRIVMSG" in line:
        return LineKind.CHAT
    return LineKind.OTHER


def redact(line: str) -> str:
    """Hide the argument of credential bearing lines for logging."""
    for command in REDACTED_COMMANDS:
        if line.startswith(command):
            return f"{command} ********"
    return line


def pass_line(secret: str) -> str:
    return f"PASS {secret}"


def nick_line(nick: str) -> str:
    return f"NICK {nick}"


def cap_req_line(capability: str = IRC_MEMBERSHIP_CAPABILITY) -> str:
    return f"CAP REQ :{capability}"


def join_line(channel: str) -> str:
    return f"JOIN #{channel}"


def part_line(channel: str) -> str:
    return f"PART #{channel}"


def privmsg_line(channel: str, text: str) -> str:
    return f"PRIVMSG #{channel} :{text}"


def pong_line() -> str:
    return f"PONG :{IRC_SERVER_LITERAL}"


__all__ = [
    "HEARTBEAT_LINE",
    "LineKind",
    "strip_tags",
    "parse_sender",
    "parse_channel_tag",
    "extract_payload",
    "classify",
    "redact",
    "pass_line",
    "nick_line",
    "cap_req_line",
    "join_line",
    "part_line",
    "privmsg_line",
    "pong_line",
]
