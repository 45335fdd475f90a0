"""Twitch chat relay: chat session, command routing and Helix API client."""

__version__ = "0.1.0"
