"""OAuth credential handling: refresh grant client and secret persistence."""

from .client import OAuthCredential, TokenClient  # noqa: F401
from .secret_store import JsonSecretStore  # noqa: F401

__all__ = ["JsonSecretStore", "OAuthCredential", "TokenClient"]
