"""Shared fixtures: credentials, config, and a scripted API server."""

from unittest.mock import MagicMock

import httpx
import pytest

from lmapi.config import ClientConfig, Credentials
from lmapi.rest import LMApiClient


class ScriptedServer:
    """Replays queued responses (or raises queued exceptions) in order.

    Every request the client sends is recorded in ``requests``.
    """

    def __init__(self):
        self.outcomes: list[httpx.Response | Exception] = []
        self.requests: list[httpx.Request] = []

    def queue(self, *outcomes: httpx.Response | Exception) -> None:
        self.outcomes.extend(outcomes)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.outcomes:
            msg = f"unexpected request: {request.method} {request.url}"
            raise AssertionError(msg)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def v1_page(items: list[dict], status: int = 200, errmsg: str = "OK") -> httpx.Response:
    """Version 1 collection response."""
    return httpx.Response(
        200,
        json={"status": status, "errmsg": errmsg, "data": {"total": -1, "items": items}},
    )


def make_items(count: int, start: int = 0) -> list[dict]:
    return [{"id": i, "displayName": f"device{i}"} for i in range(start, start + count)]


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(tenant="acme", access_id="ACCESSID", access_key="secret")


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(tenant="acme")


@pytest.fixture
def server() -> ScriptedServer:
    return ScriptedServer()


@pytest.fixture
def sleep() -> MagicMock:
    """Stand-in for time.sleep that records rate-limit waits."""
    return MagicMock()


@pytest.fixture
def api_client(
    config: ClientConfig,
    credentials: Credentials,
    server: ScriptedServer,
    sleep: MagicMock,
) -> LMApiClient:
    """Client wired to the scripted server."""
    client = LMApiClient(
        config=config,
        credentials=credentials,
        transport=server.transport,
        sleep=sleep,
    )
    yield client
    client.close()
