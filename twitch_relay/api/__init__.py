"""Helix REST API client."""

from .helix import HelixClient, bind_params, parse_user_id, token_sentinel  # noqa: F401

__all__ = ["HelixClient", "bind_params", "parse_user_id", "token_sentinel"]
