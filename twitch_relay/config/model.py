from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from ..constants import DEFAULT_COMMAND_PREFIXES
from ..irc.models import RelayTarget


class ChannelConfig(BaseModel):
    """A channel to join at start-up, optionally bound to a relay target."""

    name: str
    guild_id: str = ""
    channel_id: str = ""

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        name = v.strip().lstrip("#").lower()
        if not name:
            raise ValueError("channel name must not be empty")
        return name

    def target(self) -> RelayTarget:
        return RelayTarget(self.guild_id, self.channel_id)


def _lower_unique(values: Any, field_name: str) -> list[str]:
    if not isinstance(values, list):
        raise ValueError(f"{field_name} must be a list")
    cleaned = [
        v.strip().lower() for v in values if isinstance(v, str) and v.strip()
    ]
    return list(dict.fromkeys(cleaned))


class RelayConfig(BaseModel):
    """Chat relay configuration.

    Attributes:
        secret: Chat password (``oauth:`` prefixed token).
        nick: Bot account login.
        channels: Channels joined at start-up.
        prefixes: Command prefixes, tried in order.
        whitelist: Users allowed to run whitelisted commands.
        functions: Public command names.
        restricted_functions: Whitelisted command names.
        private_functions: Commands only the bot account may run.
        responses: Canned replies keyed by command name.
        relay_enabled: Forward chat traffic to relay targets.
        client_id: Helix application client id.
        client_secret: Helix application client secret.
        access_token: Initial Helix access token.
        refresh_token: Initial Helix refresh token.
        secrets_file: JSON file persisting refreshed tokens.
        verbose: Enable debug logging.
    """

    secret: str
    nick: str
    channels: list[ChannelConfig] = Field(default_factory=list)
    prefixes: list[str] = Field(default_factory=lambda: list(DEFAULT_COMMAND_PREFIXES))
    whitelist: list[str] = Field(default_factory=list)
    functions: list[str] = Field(default_factory=list)
    restricted_functions: list[str] = Field(default_factory=list)
    private_functions: list[str] = Field(default_factory=list)
    responses: dict[str, str] = Field(default_factory=dict)
    relay_enabled: bool = False
    client_id: str | None = None
    client_secret: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    secrets_file: str | None = None
    verbose: bool = False

    @field_validator("secret")
    @classmethod
    def normalize_secret(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("secret must not be empty")
        return v if v.startswith("oauth:") else f"oauth:{v}"

    @field_validator("nick")
    @classmethod
    def normalize_nick(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("nick must not be empty")
        return v

    @field_validator("channels", mode="before")
    @classmethod
    def coerce_channels(cls, v: Any) -> list[Any]:
        """Accept bare channel names alongside full channel objects."""
        if not isinstance(v, list):
            raise ValueError("channels must be a list")
        return [{"name": c} if isinstance(c, str) else c for c in v]

    @field_validator("whitelist", mode="before")
    @classmethod
    def normalize_whitelist(cls, v: Any) -> list[str]:
        return _lower_unique(v, "whitelist")

    @field_validator(
        "functions", "restricted_functions", "private_functions", mode="before"
    )
    @classmethod
    def normalize_commands(cls, v: Any) -> list[str]:
        return [c.casefold() for c in _lower_unique(v, "command list")]

    @field_validator("prefixes")
    @classmethod
    def validate_prefixes(cls, v: list[str]) -> list[str]:
        prefixes = [p for p in v if p]
        return prefixes or list(DEFAULT_COMMAND_PREFIXES)

    @field_validator("responses", mode="before")
    @classmethod
    def normalize_responses(cls, v: Any) -> dict[str, str]:
        if not isinstance(v, Mapping):
            raise ValueError("responses must be an object")
        return {str(k).casefold(): str(val) for k, val in v.items()}

    @model_validator(mode="after")
    def bot_is_whitelisted(self) -> RelayConfig:
        """The bot account is always on its own whitelist."""
        if self.nick not in self.whitelist:
            self.whitelist.append(self.nick)
        return self

    @property
    def helix_enabled(self) -> bool:
        return bool(self.client_id and self.access_token)

    def channel_targets(self) -> dict[str, set[RelayTarget]]:
        targets: dict[str, set[RelayTarget]] = {}
        for channel in self.channels:
            targets.setdefault(channel.name, set()).add(channel.target())
        return targets

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RelayConfig:
        return cls.model_validate(dict(data))

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
