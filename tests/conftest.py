# tests/conftest.py
import json
import logging
import re
from typing import Any

import httpx
import pytest

from n8n_gateway.client.connector import N8nConnector
from n8n_gateway.server.runtime.gateway import DispatchGateway
from n8n_gateway.server.runtime.sessions import SessionRegistry

# ------------------------------------------------------------------------------
# 1. Global Configuration
# ------------------------------------------------------------------------------

@pytest.fixture(scope="session")
def anyio_backend():
    """
    Tells pytest to use 'asyncio' as the backend for anyio tests.
    httpx and the MCP server both run on anyio, so asyncio is enough here.
    """
    return "asyncio"


@pytest.fixture(autouse=True)
def setup_test_logging(caplog):
    """
    Automatically captures logging at DEBUG level for every test.
    If a test fails, pytest will show the logs.
    """
    caplog.set_level(logging.DEBUG)


# ------------------------------------------------------------------------------
# 2. Fake n8n backend
# ------------------------------------------------------------------------------

API_KEY = "k1"
LICENSE_ERROR = "Your license does not allow for feat:projectRole:admin. To enable feat:projectRole:admin, please upgrade to a license that supports this feature."


class FakeN8n:
    """
    In-memory stand-in for the n8n public REST API (/api/v1).

    Mounted behind httpx.MockTransport so connectors run their real request
    code. Every request is recorded in `requests`.
    """

    def __init__(self, api_key: str = API_KEY):
        self.api_key = api_key
        self.reachable = True
        self.licensed = False
        self.requests: list[httpx.Request] = []
        self.workflows: dict[str, dict[str, Any]] = {}
        self.projects: dict[str, dict[str, Any]] = {}
        self.users: dict[str, dict[str, Any]] = {}
        self._next_id = 1
        self.transport = httpx.MockTransport(self.handle)

    def _new_id(self) -> str:
        value = str(self._next_id)
        self._next_id += 1
        return value

    @property
    def backend_calls(self) -> int:
        return len(self.requests)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.reachable:
            raise httpx.ConnectError("[Errno 111] Connection refused", request=request)
        if request.headers.get("X-N8N-API-KEY") != self.api_key:
            return httpx.Response(401, json={"message": "unauthorized"})

        path = request.url.path
        if not path.startswith("/api/v1/"):
            return httpx.Response(404, text="Cannot GET " + path)
        parts = path[len("/api/v1/"):].split("/")
        body = json.loads(request.content) if request.content else None
        resource, rest = parts[0], parts[1:]

        if resource == "workflows":
            return self._workflows(request.method, rest, body)
        if resource == "projects":
            return self._projects(request.method, rest, body)
        if resource == "users":
            return self._users(request.method, rest, body)
        return httpx.Response(404, json={"message": "Not Found"})

    def _workflows(self, method: str, rest: list[str], body: Any) -> httpx.Response:
        if not rest:
            if method == "GET":
                return httpx.Response(200, json={"data": list(self.workflows.values()), "nextCursor": None})
            if method == "POST":
                if "active" in body:
                    return httpx.Response(400, json={"message": "request/body/active is read-only"})
                wf_id = self._new_id()
                wf = {
                    "id": wf_id,
                    "name": body["name"],
                    "active": False,
                    "nodes": body["nodes"],
                    "connections": body["connections"],
                    "settings": body["settings"],
                    "createdAt": "2026-01-01T00:00:00.000Z",
                    "updatedAt": "2026-01-01T00:00:00.000Z",
                    "tags": [],
                }
                self.workflows[wf_id] = wf
                return httpx.Response(200, json=wf)
        wf = self.workflows.get(rest[0])
        if wf is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if len(rest) == 2 and method == "POST" and rest[1] in ("activate", "deactivate"):
            wf["active"] = rest[1] == "activate"
            return httpx.Response(200, json=wf)
        if method == "GET":
            return httpx.Response(200, json=wf)
        if method == "PUT":
            wf.update(body)
            return httpx.Response(200, json=wf)
        if method == "DELETE":
            del self.workflows[wf["id"]]
            return httpx.Response(200, json=wf)
        return httpx.Response(405, json={"message": "Method Not Allowed"})

    def _projects(self, method: str, rest: list[str], body: Any) -> httpx.Response:
        if not self.licensed:
            return httpx.Response(403, json={"message": LICENSE_ERROR})
        if not rest:
            if method == "GET":
                return httpx.Response(200, json={"data": list(self.projects.values())})
            if method == "POST":
                project = {"id": "p" + self._new_id(), "name": body["name"], "type": "team"}
                self.projects[project["id"]] = project
                return httpx.Response(201, json=project)
        project = self.projects.get(rest[0])
        if project is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if method == "PUT":
            project["name"] = body["name"]
            return httpx.Response(204)
        if method == "DELETE":
            del self.projects[project["id"]]
            return httpx.Response(204)
        return httpx.Response(405, json={"message": "Method Not Allowed"})

    def _find_user(self, id_or_email: str) -> dict[str, Any] | None:
        for user in self.users.values():
            if user["id"] == id_or_email or user["email"] == id_or_email:
                return user
        return None

    def _users(self, method: str, rest: list[str], body: Any) -> httpx.Response:
        if not rest:
            if method == "GET":
                return httpx.Response(200, json={"data": list(self.users.values()), "nextCursor": None})
            if method == "POST":
                created = []
                for item in body:
                    user = {
                        "id": "u" + self._new_id(),
                        "email": item["email"],
                        "role": item.get("role", "global:member"),
                        "isPending": True,
                    }
                    self.users[user["id"]] = user
                    created.append({"user": user, "error": ""})
                return httpx.Response(201, json=created)
        user = self._find_user(rest[0])
        if user is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if method == "GET":
            return httpx.Response(200, json=user)
        if method == "DELETE":
            del self.users[user["id"]]
            return httpx.Response(204)
        return httpx.Response(405, json={"message": "Method Not Allowed"})


@pytest.fixture
def fake_n8n() -> FakeN8n:
    return FakeN8n()


@pytest.fixture
def connector_factory(fake_n8n):
    def factory(url: str, api_key: str) -> N8nConnector:
        return N8nConnector(url, api_key, transport=fake_n8n.transport)

    return factory


@pytest.fixture
def gateway(connector_factory) -> DispatchGateway:
    """An isolated dispatch gateway wired to the fake backend."""
    return DispatchGateway(registry=SessionRegistry(), connector_factory=connector_factory)


@pytest.fixture
async def session_id(gateway) -> str:
    """Connects the gateway to the fake backend and returns the client id."""
    result = await gateway.dispatch("init-n8n", {"url": "https://example.test", "apiKey": API_KEY})
    assert not result.isError, result.text
    match = re.search(r"client ID for future operations: (\S+)$", result.text)
    assert match is not None
    return match.group(1)
