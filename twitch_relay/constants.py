"""
Configuration constants for the Twitch chat relay

This module contains all tunable constants used throughout the application.
Each constant can be overridden by setting an environment variable with the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Attempts to parse the environment variable as an integer. If the variable
    is not set or cannot be parsed, prints a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Retrieve a float value from an environment variable.

    Attempts to parse the environment variable as a float. If the variable
    is not set or cannot be parsed, prints a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default float value to return if parsing fails.

    Returns:
        The parsed float value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            print(
                f"Warning: Invalid float value for {name}='{value}', using default {default}"
            )
    return default


# Chat (TMI) endpoint
IRC_SERVER = os.getenv("IRC_SERVER", "irc.chat.twitch.tv")
IRC_PORT = _get_env_int("IRC_PORT", 6667)
IRC_CONNECT_TIMEOUT = _get_env_float(
    "IRC_CONNECT_TIMEOUT", 15.0
)  # Seconds allowed for the TCP connect
IRC_MEMBERSHIP_CAPABILITY = "twitch.tv/membership"
IRC_SERVER_LITERAL = "tmi.twitch.tv"  # Fixed server name used in PING/PONG
READ_CHUNK_SIZE = _get_env_int("READ_CHUNK_SIZE", 4096)  # Bytes per socket read

# Reconnect policy
RECONNECT_DELAY = _get_env_float(
    "RECONNECT_DELAY", 5.0
)  # Fixed delay before each reconnect attempt
MAX_RECONNECT_ATTEMPTS = _get_env_int(
    "MAX_RECONNECT_ATTEMPTS", 5
)  # Failed attempts tolerated before the session gives up

# Helix API
HELIX_BASE_URL = os.getenv("HELIX_BASE_URL", "https://api.twitch.tv/helix")
OAUTH_TOKEN_URL = os.getenv("OAUTH_TOKEN_URL", "https://id.twitch.tv/oauth2/token")
HTTP_REQUEST_TIMEOUT = _get_env_float(
    "HTTP_REQUEST_TIMEOUT", 30.0
)  # Total timeout for one HTTP call
RATE_LIMIT_MAX_RETRIES = _get_env_int(
    "RATE_LIMIT_MAX_RETRIES", 5
)  # Retries allowed for one call after HTTP 429
RATE_LIMIT_FALLBACK_DELAY = _get_env_float(
    "RATE_LIMIT_FALLBACK_DELAY", 1.0
)  # Wait used when a 429 carries no Ratelimit-Reset header

# Command routing
DEFAULT_COMMAND_PREFIXES = ("!",)
RELAY_CHAT_TAG = "[TTV]"
RELAY_REPLY_TAG = "[REPLY]"
