import time

import aiohttp
import pytest

from tests.fixtures.http_fakes import _Resp, _Session
from twitch_relay.errors.internal import ConfigurationError, TransientNetworkError
from twitch_relay.token.client import TokenClient


def _client(*responses):
    session = _Session(*responses)
    return TokenClient("cid", "csecret", session, token_url="https://id.example/token"), session


@pytest.mark.asyncio
async def test_refresh_success_posts_grant():
    client, session = _client(
        _Resp(200, {"access_token": "a2", "refresh_token": "r2", "expires_in": 100})
    )
    before = time.time()
    credential = await client.refresh("r1")
    assert credential.access_token == "a2"
    assert credential.refresh_token == "r2"
    assert credential.expires_at is not None and credential.expires_at >= before + 100
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("POST", "https://id.example/token")
    assert kwargs["data"] == {
        "grant_type": "refresh_token",
        "refresh_token": "r1",
        "client_id": "cid",
        "client_secret": "csecret",
    }


@pytest.mark.asyncio
async def test_refresh_keeps_old_refresh_token_when_not_rotated():
    client, _ = _client(_Resp(200, {"access_token": "a2"}))
    credential = await client.refresh("r1")
    assert credential.refresh_token == "r1"
    assert credential.expires_at is None


@pytest.mark.asyncio
async def test_refresh_rejected_is_configuration_error():
    client, _ = _client(_Resp(400, {"message": "Invalid refresh token"}))
    with pytest.raises(ConfigurationError) as exc_info:
        await client.refresh("bad")
    assert exc_info.value.data["status"] == 400


@pytest.mark.asyncio
async def test_refresh_without_access_token_is_configuration_error():
    client, _ = _client(_Resp(200, {"token_type": "bearer"}))
    with pytest.raises(ConfigurationError):
        await client.refresh("r1")


@pytest.mark.asyncio
async def test_refresh_requires_refresh_token():
    client, session = _client()
    with pytest.raises(ConfigurationError):
        await client.refresh("")
    assert session.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [TimeoutError(), aiohttp.ClientConnectionError("down")])
async def test_refresh_transport_errors_are_transient(error):
    client, _ = _client(error)
    with pytest.raises(TransientNetworkError):
        await client.refresh("r1")
