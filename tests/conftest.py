"""Pytest configuration and shared fixtures.

This file ensures that:
- `src/` is importable without an editable install
- tests get a recording stub server built on `httpx.MockTransport`
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

# Ensure src directory is in path for imports
repo_root = Path(__file__).parent.parent
src_path = repo_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from fmdata_client.session import Session  # noqa: E402
from fmdata_client.transport import RequestTransport  # noqa: E402

BASE_URL = "https://fms.example.com/fmi/data"

Handler = Callable[[httpx.Request], httpx.Response]


class StubServer:
    """Minimal recording server surface used by `RequestTransport` tests."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []
        self._responses: list[Handler] = []

    def queue(self, response: httpx.Response | Handler) -> None:
        if isinstance(response, httpx.Response):
            self._responses.append(lambda request: response)
        else:
            self._responses.append(response)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.bodies.append(request.read())
        if not self._responses:
            return httpx.Response(200, json={"response": {}, "messages": [{"code": "0"}]})
        return self._responses.pop(0)(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def stub_server() -> StubServer:
    return StubServer()


@pytest.fixture
def transport(stub_server: StubServer) -> RequestTransport:
    client = httpx.Client(transport=httpx.MockTransport(stub_server))
    return RequestTransport(BASE_URL, client=client)


@pytest.fixture
def session() -> Session:
    return Session(database="Inventory", username="admin", password="secret")
