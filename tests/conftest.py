"""Shared test fixtures for amygdala.

Provides a small schema with every relation shape (to-one, to-many, a
relation cycle, a ``parse`` envelope and a per-type identity override),
the registry/store/normalizer/query objects built from it, and helpers for
stubbing HTTP with :class:`httpx.MockTransport`.
"""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from amygdala.models import ClientConfig
from amygdala.normalizer import Normalizer
from amygdala.output import OutputFormat, OutputManager, reset_output, set_output
from amygdala.query import QueryEngine
from amygdala.schema import SchemaRegistry
from amygdala.store import RecordStore
from amygdala.transport import HttpxTransport


API_URL = "https://api.example.com"


def make_schema() -> dict[str, Any]:
    """A fresh copy of the shared test schema."""
    return {
        "apiUrl": API_URL,
        "idAttribute": "url",
        "users": {"url": "/api/v2/user/", "foreignKey": {"team": "teams"}},
        "teams": {"url": "/api/v2/team/", "oneToMany": {"members": "members"}},
        "members": {"url": "/api/v2/member/", "foreignKey": {"user": "users"}},
        "posts": {
            "url": "/api/v2/post/",
            "parse": lambda response: response["results"],
            "toOne": {"author": "users"},
        },
        "tags": {"url": "/api/v2/tag/", "idAttribute": "id"},
    }


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr, which
    CliRunner swaps out during a test.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, plain-format OutputManager."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Core objects
# ---------------------------------------------------------------------------


@pytest.fixture
def schema_dict() -> dict[str, Any]:
    return make_schema()


@pytest.fixture
def registry(schema_dict: dict[str, Any]) -> SchemaRegistry:
    return SchemaRegistry(schema_dict)


@pytest.fixture
def store() -> RecordStore:
    return RecordStore()


@pytest.fixture
def normalizer(registry: SchemaRegistry, store: RecordStore) -> Normalizer:
    return Normalizer(registry, store)


@pytest.fixture
def engine(registry: SchemaRegistry, store: RecordStore) -> QueryEngine:
    return QueryEngine(registry, store)


# ---------------------------------------------------------------------------
# HTTP stubbing
# ---------------------------------------------------------------------------


class RecordingHandler:
    """A MockTransport handler that records requests and replays canned responses.

    Responses are looked up by ``(method, url-without-query)``; unknown
    requests get a 404.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def add(self, method: str, url: str, json_body: Any = None, status_code: int = 200, **kwargs: Any) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if json_body is not None:
                return httpx.Response(status_code, json=json_body, **kwargs)
            return httpx.Response(status_code, **kwargs)

        self._routes[(method.upper(), url)] = respond

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = request.url
        key = (request.method, f"{url.scheme}://{url.host}{url.path}")
        route = self._routes.get(key)
        if route is None:
            return httpx.Response(404, json={"detail": "Not found."})
        return route(request)

    @property
    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def mock_transport(handler: RecordingHandler) -> HttpxTransport:
    """An HttpxTransport whose httpx client is backed by ``handler``."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxTransport(ClientConfig(), client=client)
