"""Shared fixtures for the data-skills server tests."""

import pytest

from core.models import CapabilitySnapshot
from core.safe_call import SafeInvoker

# Every variable the server reads; cleared so a developer's .env or shell
# never changes which tools a test sees.
SERVER_ENV_KEYS = (
    "TWITTER_USERNAME",
    "TWITTER_PASSWORD",
    "TWITTER_EMAIL",
    "TWITTER_APP_KEY",
    "TWITTER_APP_SECRET",
    "TWITTER_ACCESS_TOKEN",
    "TWITTER_ACCESS_SECRET",
    "TWITTER_COOKIES_FILE",
    "COINGECKO_API_KEY",
    "REQUEST_TIMEOUT_SECONDS",
    "REUSE_CLIENT_SESSIONS",
    "LOG_LEVEL",
    "MCP_TRANSPORT",
    "MCP_HOST",
    "MCP_PORT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in SERVER_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class StaticProvider:
    """Client provider that always hands out the same client.

    Records every release so tests can check the invoker cleaned up.
    """

    def __init__(self, client):
        self.client = client
        self.acquired = 0
        self.released = []
        self.closed = False

    async def acquire(self):
        self.acquired += 1
        return self.client

    async def release(self, client):
        self.released.append(client)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def static_provider():
    return StaticProvider


@pytest.fixture
def make_invoker():
    """Build a SafeInvoker around a fixed client.

    ``flags`` defaults to just the required capability being on.
    """

    def _make(client, *, source="test", required="basicAccess", flags=None, timeout=5.0):
        snapshot = CapabilitySnapshot(source=source, flags=flags if flags is not None else {required: True})
        return SafeInvoker(source, StaticProvider(client), snapshot, required, timeout=timeout)

    return _make
