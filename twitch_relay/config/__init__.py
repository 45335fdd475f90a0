"""Configuration package: pydantic model, file repository and loader."""

from .core import get_configuration, print_config_summary  # noqa: F401
from .model import ChannelConfig, RelayConfig  # noqa: F401
from .repository import ConfigRepository  # noqa: F401

__all__ = [
    "ChannelConfig",
    "ConfigRepository",
    "RelayConfig",
    "get_configuration",
    "print_config_summary",
]
