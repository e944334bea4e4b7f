import asyncio
import json
import logging

import pytest

from voice_relay.config.presets import get_preset
from voice_relay.relay.exceptions import ClientDisconnectError, UpstreamClosedError
from voice_relay.relay.proxy_session import ProxySession


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


_DISCONNECT = object()


class FakeClientChannel:
    """In-memory client leg: tests push inbound frames and read ``sent``."""

    def __init__(self):
        self.inbound = asyncio.Queue()
        self.sent = []
        self.closed = False
        self.close_calls = 0

    @property
    def is_open(self):
        return not self.closed

    def push(self, event):
        self.inbound.put_nowait(event if isinstance(event, (str, bytes)) else json.dumps(event))

    def disconnect(self):
        self.inbound.put_nowait(_DISCONNECT)

    async def receive(self):
        item = await self.inbound.get()
        if item is _DISCONNECT:
            self.closed = True
            raise ClientDisconnectError("client went away")
        return item

    async def send(self, event):
        if self.closed:
            raise ClientDisconnectError("client is closed")
        self.sent.append(event)

    async def close(self, code=1000):
        self.close_calls += 1
        if not self.closed:
            self.closed = True
            self.inbound.put_nowait(_DISCONNECT)

    def types(self):
        return [event["type"] for event in self.sent]


class FakeUpstreamChannel:
    """In-memory upstream leg with the same surface as UpstreamChannel."""

    def __init__(self):
        self.inbound = asyncio.Queue()
        self.sent = []
        self.closed = False
        self.close_calls = 0

    @property
    def is_open(self):
        return not self.closed

    def push(self, event):
        self.inbound.put_nowait(event if isinstance(event, (str, bytes)) else json.dumps(event))

    def fail(self, error):
        """Make the next receive raise ``error``."""
        self.inbound.put_nowait(error)

    async def receive(self):
        item = await self.inbound.get()
        if isinstance(item, Exception):
            self.closed = True
            raise item
        return item

    async def send(self, event):
        if self.closed:
            raise UpstreamClosedError("upstream is closed")
        self.sent.append(event)

    async def close(self, code=1000, reason=None):
        self.close_calls += 1
        if not self.closed:
            self.closed = True
            self.inbound.put_nowait(UpstreamClosedError("closed locally"))

    def types(self):
        return [event["type"] for event in self.sent]


class FakeCredentials:
    def __init__(self, token="ephemeral-token", error=None, gate=None):
        self.token = token
        self.error = error
        self.gate = gate
        self.calls = 0

    async def acquire_token(self):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.token


class FakeConnector:
    def __init__(self, upstream=None, error=None, gate=None):
        self.upstream = upstream
        self.error = error
        self.gate = gate
        self.tokens = []

    async def __call__(self, token):
        self.tokens.append(token)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.upstream


async def _eventually(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def eventually():
    return _eventually


@pytest.fixture
def fake_client():
    return FakeClientChannel()


@pytest.fixture
def fake_upstream():
    return FakeUpstreamChannel()


@pytest.fixture
def credentials():
    return FakeCredentials()


@pytest.fixture
def connector(fake_upstream):
    return FakeConnector(upstream=fake_upstream)


@pytest.fixture
def make_session(fake_client, credentials, connector):
    """Build a ProxySession wired to the in-memory fakes."""

    def factory(**kwargs):
        kwargs.setdefault("greeting_delay", 0.01)
        return ProxySession(
            kwargs.pop("client", fake_client),
            kwargs.pop("credentials", credentials),
            kwargs.pop("preset", get_preset("companion")),
            upstream_connector=kwargs.pop("upstream_connector", connector),
            session_id="test-session",
            **kwargs,
        )

    return factory
