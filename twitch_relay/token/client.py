"""OAuth refresh-token grant client."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import aiohttp

from ..constants import HTTP_REQUEST_TIMEOUT, OAUTH_TOKEN_URL
from ..errors.internal import ConfigurationError, TransientNetworkError
from ..logs.logger import logger


@dataclass(frozen=True)
class OAuthCredential:
    """Access/refresh token pair shared by every Helix call.

    Attributes:
        access_token: Bearer token attached to API requests.
        refresh_token: Token exchanged for a new access token.
        expires_at: Epoch seconds at which the access token lapses, if known.
    """

    access_token: str
    refresh_token: str = ""
    expires_at: float | None = None


class TokenClient:
    """Client for refreshing OAuth access tokens.

    Posts the refresh-token grant to the OAuth token endpoint.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        http_session: aiohttp.ClientSession,
        token_url: str = OAUTH_TOKEN_URL,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.session = http_session
        self.token_url = token_url

    async def refresh(self, refresh_token: str) -> OAuthCredential:
        """Exchange ``refresh_token`` for a new credential.

        Raises:
            ConfigurationError: The endpoint refused the grant or replied
                without an access token. A bad refresh token is fatal.
            TransientNetworkError: Timeout or transport failure.
        """
        if not refresh_token:
            raise ConfigurationError("No refresh token available")
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        timeout = aiohttp.ClientTimeout(total=HTTP_REQUEST_TIMEOUT)
        try:
            async with self.session.post(
                self.token_url, data=data, timeout=timeout
            ) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    logger.log_event(
                        "token",
                        "refresh_rejected",
                        level=logging.ERROR,
                        status=resp.status,
                    )
                    raise ConfigurationError(
                        f"Token refresh rejected with HTTP {resp.status}",
                        data={"status": resp.status, "body": body[:200]},
                    )
                js = await resp.json()
        except TimeoutError as e:
            raise TransientNetworkError("Token refresh timeout") from e
        except aiohttp.ClientError as e:
            raise TransientNetworkError(f"Network error during token refresh: {e}") from e

        new_access = js.get("access_token") if isinstance(js, dict) else None
        if not new_access:
            raise ConfigurationError("Missing access_token in refresh response")
        new_refresh = js.get("refresh_token") or refresh_token
        expires_in = js.get("expires_in")
        expires_at = time.time() + float(expires_in) if expires_in else None
        logger.log_event("token", "refreshed", expires_in=expires_in)
        return OAuthCredential(
            access_token=new_access, refresh_token=new_refresh, expires_at=expires_at
        )
