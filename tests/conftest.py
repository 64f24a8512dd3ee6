from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from sse_relay.config import Settings
from sse_relay.main import create_app

REMOTE_PEER = ("203.0.113.7", 50000)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        keepalive_seconds=10,
        shutdown_grace_seconds=0.01,
        api_keys="",
    )


@pytest.fixture
def terminate():
    return MagicMock()


@pytest.fixture
def app(settings, terminate):
    app = create_app(settings, terminate=terminate)
    # Disable rate limiting in tests
    app.state.limiter.enabled = False
    yield app
    app.state.limiter.enabled = True


@pytest.fixture
def relay(app):
    return app.state.relay


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def remote_client(app):
    """Client whose requests come from a non-loopback address."""
    async with AsyncClient(
        transport=ASGITransport(app=app, client=REMOTE_PEER),
        base_url="http://test",
    ) as ac:
        yield ac
