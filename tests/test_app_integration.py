"""HTTP boundary tests for the FastAPI app.

Status-code paths go through Starlette's TestClient with the real lifespan.
The /sse endpoint never finishes on its own, so it is exercised by calling
the route directly and reading the first frame off its body iterator.
"""

from __future__ import annotations

import asyncio
import contextlib
import gc
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from starlette.requests import ClientDisconnect
from starlette.testclient import TestClient

from devrelay.config.settings import Settings
from devrelay.gateway.app import (
    SSE_PATH,
    app,
    build_tool_registry,
    health,
    lifespan,
    root,
    sse_endpoint,
)
from devrelay.infra.errors import SessionClosedError
from devrelay.session.connection import SseConnection

pytestmark = pytest.mark.integration


@pytest.fixture()
def relay_env(tmp_path: Path, source_tree: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("TOOLS_TASKS_DIR", str(tmp_path / "tasks"))
    monkeypatch.setenv("TOOLS_PROJECT_ROOT", str(source_tree))
    monkeypatch.setenv("TOOLS_SEARCH_ROOT", str(source_tree))
    monkeypatch.setenv("SERVER_NAME", "relay-test")
    monkeypatch.delenv("GEOCODER_URL", raising=False)
    monkeypatch.delenv("TOOLS_STRICT_VALIDATION", raising=False)
    return tmp_path


@pytest.fixture()
def client(relay_env: Path):
    with patch("devrelay.gateway.app.setup_logging"), TestClient(app) as c:
        yield c


async def _collect(connection: SseConnection) -> list[str]:
    connection.close()
    return [frame async for frame in connection.stream()]


class TestMetadataEndpoints:
    def test_health_zero_sessions(self, client: TestClient) -> None:
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["server"] == "relay-test"
        assert body["active_sessions"] == 0
        assert "timestamp" in body

    def test_health_counts_open_sessions(self, client: TestClient) -> None:
        client.app.state.session_manager.open_session(SseConnection())
        assert client.get("/health").json()["active_sessions"] == 1

    def test_root_lists_tools(self, client: TestClient) -> None:
        body = client.get("/").json()
        assert body["endpoints"]["sse"] == "GET /sse"
        assert [t["name"] for t in body["tools"]] == [
            "create_task",
            "query_project_status",
            "get_code_context",
        ]
        assert all(set(t) == {"name", "description"} for t in body["tools"])


class TestMessagesEndpoint:
    def test_missing_session_id(self, client: TestClient) -> None:
        response = client.post("/messages", json={"jsonrpc": "2.0", "id": 1, "method": "ping"})
        assert response.status_code == 400
        assert response.json() == {"error": "sessionId is required"}

    def test_unknown_session(self, client: TestClient) -> None:
        response = client.post(
            "/messages?sessionId=nope", json={"jsonrpc": "2.0", "id": 1, "method": "ping"}
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Session not found"}

    def test_invalid_json_body(self, client: TestClient) -> None:
        session_id = client.app.state.session_manager.open_session(SseConnection())
        response = client.post(
            f"/messages?sessionId={session_id}",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400

    def test_accepted_and_pushed_over_stream(self, client: TestClient) -> None:
        connection = SseConnection()
        session_id = client.app.state.session_manager.open_session(connection)

        response = client.post(
            f"/messages?sessionId={session_id}",
            json={
                "jsonrpc": "2.0",
                "id": 11,
                "method": "tools/call",
                "params": {
                    "name": "query_project_status",
                    "arguments": {"query_type": "system_health"},
                },
            },
        )

        assert response.status_code == 202
        frames = client.portal.call(_collect, connection)
        assert frames[0].startswith("event: endpoint\n")
        assert frames[1].startswith("event: message\n")
        payload = json.loads(frames[1].split("data: ", 1)[1])
        assert payload["id"] == 11
        status = json.loads(payload["result"]["content"][0]["text"])
        assert status["status"] == "healthy"

    def test_route_failure_is_500(self, client: TestClient) -> None:
        manager = client.app.state.session_manager
        session_id = manager.open_session(SseConnection())
        with patch.object(
            manager, "route_message", AsyncMock(side_effect=SessionClosedError())
        ):
            response = client.post(
                f"/messages?sessionId={session_id}",
                json={"jsonrpc": "2.0", "id": 1, "method": "ping"},
            )
        assert response.status_code == 500
        assert response.json() == {"error": "Session connection is closed"}


class TestSseEndpoint:
    @pytest.mark.asyncio
    async def test_sse_opens_session_and_announces_endpoint(self, relay_env: Path) -> None:
        fake_app = MagicMock()
        request = MagicMock()
        request.app = fake_app
        request.is_disconnected = AsyncMock(return_value=False)

        with patch("devrelay.gateway.app.setup_logging"):
            async with lifespan(fake_app):
                assert (await health(request))["active_sessions"] == 0

                response = await sse_endpoint(request)
                assert response.media_type == "text/event-stream"
                assert (await health(request))["active_sessions"] == 0
                first = await response.body_iterator.__anext__()

                manager = fake_app.state.session_manager
                [session_id] = manager.session_ids()
                assert first == f"event: endpoint\ndata: /messages?sessionId={session_id}\n\n"
                assert (await health(request))["active_sessions"] == 1
                assert (await root(request))["active_sessions"] == 1

                await response.body_iterator.aclose()
                assert (await health(request))["active_sessions"] == 0

    @pytest.mark.asyncio
    async def test_client_gone_before_response_start_leaves_no_session(
        self, relay_env: Path
    ) -> None:
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": SSE_PATH,
            "raw_path": SSE_PATH.encode(),
            "root_path": "",
            "query_string": b"",
            "headers": [],
            "client": ("testclient", 50000),
            "server": ("testserver", 80),
        }

        async def receive() -> dict:
            return {"type": "http.disconnect"}

        async def send(message: dict) -> None:
            if message["type"] == "http.response.start":
                raise OSError("connection reset by peer")

        with patch("devrelay.gateway.app.setup_logging"):
            async with lifespan(app):
                with contextlib.suppress(OSError, ClientDisconnect):
                    await app(scope, receive, send)
                gc.collect()
                await asyncio.sleep(0)
                assert app.state.session_manager.active_count == 0

    @pytest.mark.asyncio
    async def test_shutdown_closes_sessions(self, relay_env: Path) -> None:
        fake_app = MagicMock()
        with patch("devrelay.gateway.app.setup_logging"):
            async with lifespan(fake_app):
                connection = SseConnection()
                fake_app.state.session_manager.open_session(connection)
        assert connection.closed
        assert fake_app.state.session_manager.active_count == 0


class TestBuildToolRegistry:
    def test_geocoder_url_registers_validate_address(self, relay_env: Path, monkeypatch) -> None:
        monkeypatch.setenv("GEOCODER_URL", "http://geocoder.test/validate")
        registry = build_tool_registry(Settings())
        assert "validate_address" in registry
        assert registry.sealed

    def test_empty_search_root_falls_back_to_placeholder(
        self, relay_env: Path, monkeypatch
    ) -> None:
        monkeypatch.setenv("TOOLS_SEARCH_ROOT", "")
        monkeypatch.setenv("TOOLS_TASKS_DIR", "")
        registry = build_tool_registry(Settings())
        assert [d.name for d in registry.list_tools()] == [
            "create_task",
            "query_project_status",
            "get_code_context",
        ]
