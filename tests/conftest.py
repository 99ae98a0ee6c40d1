"""Pytest configuration and shared fixtures."""

import pytest
import pytest_asyncio

from anonrelay.config import RelaySettings
from anonrelay.main import build_app
from anonrelay.store import StateStore

from fakes import ADMIN_ID, CN_CODE, IT_CODE, FakeTransport, MemoryBacking


@pytest.fixture
def settings():
    """Settings independent of the environment and any .env file."""
    return RelaySettings(
        _env_file=None,
        bot_token="123:test",
        admin_id=ADMIN_ID,
        access_code_it=IT_CODE,
        access_code_cn=CN_CODE,
    )


@pytest.fixture
def backing():
    return MemoryBacking()


@pytest_asyncio.fixture
async def store(backing):
    """A loaded, empty store."""
    s = StateStore(backing)
    await s.load()
    return s


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def app(settings, store, transport):
    """Fully wired relay around the fake transport."""
    return build_app(settings, store, transport)


@pytest_asyncio.fixture
async def bound_app(app):
    """Relay with a channel already bound."""
    await app.channels.bind("-100500")
    return app
