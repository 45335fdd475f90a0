"""Configuration loading entry points."""

from __future__ import annotations

import logging
import os

from pydantic import ValidationError

from ..errors.internal import ConfigurationError
from .model import RelayConfig
from .repository import ConfigRepository

CONFIG_ENV_VAR = "TWITCH_RELAY_CONF"
DEFAULT_CONFIG_FILE = "twitch_relay.conf"


def get_config_path(path: str | None = None) -> str:
    return path or os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE)


def get_configuration(path: str | None = None) -> RelayConfig:
    """Load and validate the relay configuration.

    Args:
        path: Config file path. Defaults to ``$TWITCH_RELAY_CONF`` or
            ``twitch_relay.conf``.

    Raises:
        ConfigurationError: The file is missing, empty or invalid.
    """
    config_path = get_config_path(path)
    repo = ConfigRepository(config_path)
    if not repo.exists():
        raise ConfigurationError(
            f"Config file not found: {config_path}", data={"path": config_path}
        )
    raw = repo.load_raw()
    if not raw:
        raise ConfigurationError(
            f"Config file is empty or unreadable: {config_path}",
            data={"path": config_path},
        )
    try:
        config = RelayConfig.from_dict(raw)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise ConfigurationError(
            f"Invalid configuration in {config_path}: {', '.join(fields)}",
            data={"path": config_path, "fields": fields},
        ) from e
    logging.info(
        f"Configuration loaded nick={config.nick} channels={len(config.channels)}"
    )
    return config


def print_config_summary(config: RelayConfig) -> None:
    print(f"Nick: {config.nick}")
    print(f"Channels: {', '.join(c.name for c in config.channels) or '-'}")
    print(f"Prefixes: {' '.join(config.prefixes)}")
    print(f"Relay: {'on' if config.relay_enabled else 'off'}")
    print(f"Helix: {'on' if config.helix_enabled else 'off'}")
