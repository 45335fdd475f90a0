import os

import pytest

# Keep timing constants test friendly; must be set before twitch_relay imports
os.environ.setdefault("RECONNECT_DELAY", "0")
os.environ.setdefault("RATE_LIMIT_FALLBACK_DELAY", "0")

from tests.fixtures.chat_fakes import FakeChatSession, RecordingRelay  # noqa: E402


@pytest.fixture
def fake_chat_session() -> FakeChatSession:
    return FakeChatSession()


@pytest.fixture
def recording_relay() -> RecordingRelay:
    return RecordingRelay()


@pytest.fixture(autouse=True)
def _no_debug_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("DEBUG", raising=False)
    yield
