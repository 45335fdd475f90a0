"""Asynchronous Twitch Helix API client.

Every endpoint method is a thin parameter-binding wrapper that returns the
raw response body; decoding is left to the caller. Two 401 sentinel bodies
get special treatment: "OAuth token is missing" fails permanently, "Invalid
OAuth token" triggers exactly one refresh-and-retry cycle.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import quote, urlencode

import aiohttp

from ..constants import HELIX_BASE_URL, HTTP_REQUEST_TIMEOUT
from ..errors.handling import handle_api_error
from ..errors.internal import (
    AuthExpiredError,
    ConfigurationError,
    InternalError,
    QueryError,
    TokenMissingError,
)
from ..logs.logger import logger
from ..protocols import SecretStore
from ..rate.retry_scheduler import RetryScheduler
from ..token.client import OAuthCredential, TokenClient

MISSING_TOKEN_MESSAGE = "OAuth token is missing"
INVALID_TOKEN_MESSAGE = "Invalid OAuth token"

GET_USER = "users?login=:nick"
START_RAID = "raids?from_broadcaster_id=:from_id&to_broadcaster_id=:to_id"
CANCEL_RAID = "raids?broadcaster_id=:broadcaster_id"
GET_CREATOR_GOALS = "goals?broadcaster_id=:broadcaster_id"
POLLS = "polls"
PREDICTIONS = "predictions"
CLIPS = "clips"
STREAM_MARKERS = "streams/markers"
VIDEOS = "videos"
SCHEDULE = "schedule"
SEGMENT = "schedule/segment"


def bind_params(template: str, params: Mapping[str, Any]) -> str:
    """Substitute ``:name`` placeholders in ``template`` with encoded values."""
    out = template
    # Longest keys first so ``:id`` never clobbers part of a longer name
    for key in sorted(params, key=len, reverse=True):
        out = out.replace(f":{key}", quote(str(params[key]), safe=""))
    return out


def with_query(path: str, params: Mapping[str, Any]) -> str:
    """Append ``params`` as a query string, dropping ``None`` values.

    List values produce repeated keys (``id=a&id=b``).
    """
    items: list[tuple[str, Any]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, list | tuple):
            items.extend((key, v) for v in value)
        else:
            items.append((key, value))
    if not items:
        return path
    return f"{path}?{urlencode(items)}"


def token_sentinel(body: str) -> str | None:
    """Return the sentinel message of a 401 error body, or None."""
    if "OAuth token" not in body:
        return None
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if not isinstance(data, dict) or data.get("status") != 401:
        return None
    message = data.get("message")
    if message in (MISSING_TOKEN_MESSAGE, INVALID_TOKEN_MESSAGE):
        return message
    return None


def parse_user_id(body: str) -> str | None:
    """Extract ``data[0].id`` from a ``users`` response body."""
    try:
        data = json.loads(body)
    except ValueError:
        return None
    rows = data.get("data") if isinstance(data, dict) else None
    if isinstance(rows, list) and rows and isinstance(rows[0], dict):
        user_id = rows[0].get("id")
        return str(user_id) if user_id else None
    return None


def _one_week_after(started_at: str) -> str:
    start = datetime.fromisoformat(started_at.replace("Z", "+00:00"))
    return (start + timedelta(weeks=1)).isoformat()


class HelixClient:
    """Client for the authenticated Helix REST API.

    Args:
        session: The aiohttp session used for every request.
        client_id: Application client id sent as ``Client-Id``.
        credential: Initial access/refresh token pair.
        token_client: Performs the refresh-token grant. Without one a
            refresh attempt raises ``ConfigurationError``.
        secret_store: Receives refreshed tokens under ``access_token`` and
            ``refresh_token``.
        scheduler: Retries HTTP 429 responses. Without one endpoint methods
            call ``query`` directly.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        client_id: str,
        credential: OAuthCredential,
        *,
        token_client: TokenClient | None = None,
        secret_store: SecretStore | None = None,
        scheduler: RetryScheduler | None = None,
        base_url: str = HELIX_BASE_URL,
    ):
        if not session:
            raise ValueError("aiohttp session required")
        self._session = session
        self.client_id = client_id
        self.credential = credential
        self.token_client = token_client
        self.secret_store = secret_store
        self.scheduler = scheduler
        self.base_url = base_url.rstrip("/")
        self._refresh_lock = asyncio.Lock()

    async def _request(
        self, method: str, endpoint: str, body: Any | None
    ) -> tuple[int, dict[str, str], str]:
        url = f"{self.base_url}/{endpoint}"
        headers = {
            "Authorization": f"Bearer {self.credential.access_token}",
            "Client-Id": self.client_id,
            "Content-Type": "application/json",
        }
        timeout = aiohttp.ClientTimeout(total=HTTP_REQUEST_TIMEOUT)

        async def operation() -> tuple[int, dict[str, str], str]:
            async with self._session.request(
                method, url, headers=headers, json=body, timeout=timeout
            ) as resp:
                text = await resp.text()
                return resp.status, dict(resp.headers), text

        status, resp_headers, text = await handle_api_error(
            operation, f"Helix {method} {endpoint}"
        )
        logger.log_event(
            "helix",
            "response",
            level=logging.DEBUG,
            method=method,
            endpoint=endpoint,
            status=status,
        )
        return status, resp_headers, text

    async def _send(self, endpoint: str, method: str, body: Any | None) -> str:
        status, headers, text = await self._request(method, endpoint, body)
        sentinel = token_sentinel(text)
        if sentinel == MISSING_TOKEN_MESSAGE:
            raise TokenMissingError(
                MISSING_TOKEN_MESSAGE, data={"endpoint": endpoint, "status": status}
            )
        if sentinel == INVALID_TOKEN_MESSAGE:
            raise AuthExpiredError(
                INVALID_TOKEN_MESSAGE, data={"endpoint": endpoint, "status": status}
            )
        if status >= 400:
            raise QueryError(
                f"Helix {method} {endpoint} failed with HTTP {status}",
                status=status,
                headers=headers,
                body=text,
            )
        return text

    async def query(
        self, endpoint: str, method: str = "GET", body: Any | None = None
    ) -> str:
        """Perform one Helix call and return the raw response body.

        Raises:
            TokenMissingError: The request carried no token. Not retried.
            AuthExpiredError: The token was still rejected after one refresh.
            QueryError: Any other response with status >= 400.
            TransientNetworkError: Transport failure or timeout.
            ConfigurationError: The refresh grant was refused.
        """
        try:
            return await self._send(endpoint, method, body)
        except AuthExpiredError:
            logger.log_event(
                "helix",
                "token_invalid",
                level=logging.WARNING,
                method=method,
                endpoint=endpoint,
            )
        await self.refresh_access_token()
        return await self._send(endpoint, method, body)

    async def refresh_access_token(self) -> OAuthCredential:
        """Swap in a freshly granted credential and persist it.

        Concurrent callers share a single refresh.
        """
        stale = self.credential
        async with self._refresh_lock:
            if self.credential is not stale:
                return self.credential
            if self.token_client is None:
                raise ConfigurationError("Token refresh is not configured")
            try:
                credential = await self.token_client.refresh(stale.refresh_token)
            except ConfigurationError:
                raise
            except InternalError as e:
                raise ConfigurationError(
                    f"Token refresh failed: {e}", data=e.data
                ) from e
            self.credential = credential
            logger.log_event("token", "swapped", expires_at=credential.expires_at)
            self._persist(credential)
            return credential

    def _persist(self, credential: OAuthCredential) -> None:
        if self.secret_store is None:
            return
        try:
            self.secret_store.set_many(
                {
                    "access_token": credential.access_token,
                    "refresh_token": credential.refresh_token,
                }
            )
        except OSError as e:
            logger.log_event(
                "token",
                "persist_failed",
                level=logging.WARNING,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def query_with_rate_limit_handling(
        self, endpoint: str, method: str = "GET", body: Any | None = None
    ) -> str:
        """Run ``query`` with HTTP 429 responses retried after the reset time.

        Raises:
            RateLimitError: 429 responses outlasted the scheduler's retries.
        """
        if self.scheduler is None:
            return await self.query(endpoint, method, body)
        key = f"{method} {endpoint.split('?', 1)[0]}"
        text = await self.scheduler.run(
            lambda: self.query(endpoint, method, body), endpoint=key
        )
        if token_sentinel(text) == INVALID_TOKEN_MESSAGE:
            await self.refresh_access_token()
            text = await self._send(endpoint, method, body)
        return text

    async def _call(
        self, endpoint: str, method: str = "GET", body: Any | None = None
    ) -> str:
        return await self.query_with_rate_limit_handling(endpoint, method, body)

    # ---- Endpoint helpers ----
    async def get_user(self, nick: str) -> str:
        return await self._call(bind_params(GET_USER, {"nick": nick}))

    async def start_raid(self, from_id: str, to_id: str) -> str:
        return await self._call(
            bind_params(START_RAID, {"from_id": from_id, "to_id": to_id}), "POST"
        )

    async def cancel_raid(self, broadcaster_id: str) -> str:
        return await self._call(
            bind_params(CANCEL_RAID, {"broadcaster_id": broadcaster_id}), "DELETE"
        )

    async def get_creator_goals(self, broadcaster_id: str) -> str:
        return await self._call(
            bind_params(GET_CREATOR_GOALS, {"broadcaster_id": broadcaster_id})
        )

    async def create_poll(
        self,
        broadcaster_id: str,
        title: str,
        choices: Iterable[str | Mapping[str, Any]],
        duration: int,
        channel_points_per_vote: int | None = None,
    ) -> str:
        data: dict[str, Any] = {
            "broadcaster_id": broadcaster_id,
            "title": title,
            "choices": [
                {"title": c} if isinstance(c, str) else dict(c) for c in choices
            ],
            "duration": duration,
        }
        if channel_points_per_vote is not None:
            data["channel_points_voting_enabled"] = True
            data["channel_points_per_vote"] = channel_points_per_vote
        return await self._call(POLLS, "POST", data)

    async def end_poll(
        self, broadcaster_id: str, poll_id: str, status: str = "TERMINATED"
    ) -> str:
        data = {"broadcaster_id": broadcaster_id, "id": poll_id, "status": status}
        return await self._call(POLLS, "PATCH", data)

    async def get_polls(self, broadcaster_id: str, poll_id: str | None = None) -> str:
        return await self._call(
            with_query(POLLS, {"broadcaster_id": broadcaster_id, "id": poll_id})
        )

    async def create_prediction(
        self,
        broadcaster_id: str,
        title: str,
        outcomes: Iterable[str | Mapping[str, Any]],
        prediction_window: int,
    ) -> str:
        data = {
            "broadcaster_id": broadcaster_id,
            "title": title,
            "outcomes": [
                {"title": o} if isinstance(o, str) else dict(o) for o in outcomes
            ],
            "prediction_window": prediction_window,
        }
        return await self._call(PREDICTIONS, "POST", data)

    async def end_prediction(
        self,
        broadcaster_id: str,
        prediction_id: str,
        status: str,
        winning_outcome_id: str | None = None,
    ) -> str:
        data = {"broadcaster_id": broadcaster_id, "id": prediction_id, "status": status}
        if status == "RESOLVED" and winning_outcome_id is not None:
            data["winning_outcome_id"] = winning_outcome_id
        return await self._call(PREDICTIONS, "PATCH", data)

    async def get_predictions(
        self, broadcaster_id: str, prediction_ids: str | list[str] | None = None
    ) -> str:
        return await self._call(
            with_query(
                PREDICTIONS, {"broadcaster_id": broadcaster_id, "id": prediction_ids}
            )
        )

    async def create_clip(self, broadcaster_id: str) -> str:
        return await self._call(
            with_query(CLIPS, {"broadcaster_id": broadcaster_id}), "POST"
        )

    async def get_clips(
        self,
        broadcaster_id: str,
        started_at: str | None = None,
        ended_at: str | None = None,
    ) -> str:
        params: dict[str, Any] = {"broadcaster_id": broadcaster_id}
        if started_at is not None:
            params["started_at"] = started_at
            params["ended_at"] = ended_at or _one_week_after(started_at)
        return await self._call(with_query(CLIPS, params))

    async def get_game_clips(
        self, game_id: str, started_at: str | None = None, ended_at: str | None = None
    ) -> str:
        params: dict[str, Any] = {"game_id": game_id}
        if started_at is not None:
            params["started_at"] = started_at
            params["ended_at"] = ended_at or _one_week_after(started_at)
        return await self._call(with_query(CLIPS, params))

    async def get_specific_clips(self, clip_ids: list[str]) -> str:
        return await self._call(with_query(CLIPS, {"id": list(clip_ids)}))

    async def create_stream_marker(
        self, broadcaster_id: str, description: str | None = None
    ) -> str:
        data = {"user_id": broadcaster_id}
        if description is not None:
            data["description"] = description
        return await self._call(STREAM_MARKERS, "POST", data)

    async def get_stream_markers(
        self,
        broadcaster_id: str,
        video_id: str | None = None,
        first: int | None = None,
        after: str | None = None,
    ) -> str:
        params = {
            "user_id": broadcaster_id,
            "video_id": video_id,
            "first": first,
            "after": after,
        }
        return await self._call(with_query(STREAM_MARKERS, params))

    async def get_videos_by_id(self, video_ids: list[str]) -> str:
        return await self._call(with_query(VIDEOS, {"id": list(video_ids)}))

    async def get_videos_by_broadcaster(
        self,
        broadcaster_id: str,
        type: str | None = None,  # noqa: A002
        first: int | None = None,
        after: str | None = None,
    ) -> str:
        params = {"user_id": broadcaster_id, "type": type, "first": first, "after": after}
        return await self._call(with_query(VIDEOS, params))

    async def get_videos_by_game(
        self,
        game_id: str,
        type: str | None = None,  # noqa: A002
        language: str | None = None,
        period: str | None = None,
        sort: str | None = None,
        first: int | None = None,
        after: str | None = None,
    ) -> str:
        params = {
            "game_id": game_id,
            "type": type,
            "language": language,
            "period": period,
            "sort": sort,
            "first": first,
            "after": after,
        }
        return await self._call(with_query(VIDEOS, params))

    async def delete_videos(self, video_ids: list[str]) -> str:
        return await self._call(with_query(VIDEOS, {"id": list(video_ids)}), "DELETE")

    async def get_schedule(
        self,
        broadcaster_id: str,
        start_time: str | None = None,
        segment_id: str | None = None,
    ) -> str:
        params = {
            "broadcaster_id": broadcaster_id,
            "start_time": start_time,
            "id": segment_id,
        }
        return await self._call(with_query(SCHEDULE, params))

    async def create_segment(
        self, broadcaster_id: str, data: Mapping[str, Any]
    ) -> str:
        return await self._call(
            with_query(SEGMENT, {"broadcaster_id": broadcaster_id}), "POST", dict(data)
        )

    async def update_segment(
        self, broadcaster_id: str, segment_id: str, data: Mapping[str, Any]
    ) -> str:
        return await self._call(
            with_query(SEGMENT, {"broadcaster_id": broadcaster_id, "id": segment_id}),
            "PATCH",
            dict(data),
        )

    async def cancel_segment(self, broadcaster_id: str, segment_id: str) -> str:
        return await self.update_segment(
            broadcaster_id, segment_id, {"is_canceled": True}
        )

    async def delete_segment(self, broadcaster_id: str, segment_id: str) -> str:
        return await self._call(
            with_query(SEGMENT, {"broadcaster_id": broadcaster_id, "id": segment_id}),
            "DELETE",
        )
