import types
import uuid

import pytest

from services.context import build_context
from storage import Storage
from utils.config import Settings

API_TOKEN = "test-token"


class StubFollowup:
    def __init__(self, sent):
        self._sent = sent

    async def send(self, content=None, **kwargs):
        self._sent.append((content, kwargs))


class StubResponse:
    def __init__(self, sent):
        self._sent = sent
        self._done = False

    def is_done(self):
        return self._done

    async def send_message(self, content=None, **kwargs):
        self._done = True
        self._sent.append((content, kwargs))


class StubInteraction:
    """Records everything the cog sends back."""

    def __init__(self, user_id=1001, name="alice_chat"):
        self.user = types.SimpleNamespace(id=user_id, name=name)
        self.sent = []
        self.response = StubResponse(self.sent)
        self.followup = StubFollowup(self.sent)


@pytest.fixture
def settings(tmp_path):
    # file-backed so concurrent sessions get their own connections
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'whitelist.db'}",
        SERVER_NAME="survival",
        SERVER_DISPLAY_NAME="Survival",
        API_TOKEN=API_TOKEN,
        CODE_TTL_MINUTES=30,
        CACHE_TTL_SECONDS=60,
        ACCESS_CHECK_TIMEOUT=1.0,
        BYPASS_SERVERS="lobby",
        DISCORD_TOKEN="",
    )


@pytest.fixture
async def storage(settings):
    st = Storage.from_settings(settings)
    await st.initialize()
    yield st
    await st.close()


@pytest.fixture
async def ctx(settings, storage):
    c = build_context(settings, storage=storage)
    yield c
    await c.close()


@pytest.fixture
def player():
    return types.SimpleNamespace(id=uuid.uuid4(), name="Steve")


@pytest.fixture
def make_interaction():
    return StubInteraction
