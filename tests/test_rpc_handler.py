"""Tests for McpProtocolHandler and JSON-RPC frame parsing."""

from __future__ import annotations

import pytest

from devrelay.config.settings import ServerSettings
from devrelay.constants import MCP_PROTOCOL_VERSION
from devrelay.gateway.dispatch import ToolDispatcher
from devrelay.gateway.protocol import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    error_frame,
    parse_rpc_message,
)
from devrelay.gateway.rpc import McpProtocolHandler
from devrelay.infra.errors import GatewayError


@pytest.fixture()
def handler(dispatcher: ToolDispatcher) -> McpProtocolHandler:
    return McpProtocolHandler(dispatcher, ServerSettings(name="relay-test", version="9.9.9"))


class TestParse:
    def test_request(self) -> None:
        request = parse_rpc_message({"jsonrpc": "2.0", "id": 1, "method": "ping"})
        assert request.id == 1
        assert request.params == {}
        assert request.is_notification is False

    def test_notification(self) -> None:
        assert parse_rpc_message({"method": "notifications/initialized"}).is_notification

    @pytest.mark.parametrize("data", [[], "x", {"id": 1}, {"method": "m", "jsonrpc": "1.0"}])
    def test_invalid(self, data) -> None:
        with pytest.raises(GatewayError) as exc_info:
            parse_rpc_message(data)
        assert exc_info.value.code == "INVALID_REQUEST"

    def test_error_frame_keeps_null_id(self) -> None:
        assert error_frame(None, -1, "m") == {
            "jsonrpc": "2.0",
            "id": None,
            "error": {"code": -1, "message": "m"},
        }


class TestHandle:
    @pytest.mark.asyncio
    async def test_initialize(self, handler: McpProtocolHandler) -> None:
        response = await handler.handle({"jsonrpc": "2.0", "id": 0, "method": "initialize"})
        result = response["result"]
        assert result["protocolVersion"] == MCP_PROTOCOL_VERSION
        assert result["capabilities"] == {"tools": {}}
        assert result["serverInfo"] == {"name": "relay-test", "version": "9.9.9"}

    @pytest.mark.asyncio
    async def test_initialize_echoes_supported_version(self, handler: McpProtocolHandler) -> None:
        response = await handler.handle({
            "jsonrpc": "2.0",
            "id": 0,
            "method": "initialize",
            "params": {"protocolVersion": MCP_PROTOCOL_VERSION},
        })
        assert response["result"]["protocolVersion"] == MCP_PROTOCOL_VERSION

    @pytest.mark.asyncio
    async def test_initialize_unsupported_version_answers_ours(
        self, handler: McpProtocolHandler
    ) -> None:
        response = await handler.handle({
            "jsonrpc": "2.0",
            "id": 0,
            "method": "initialize",
            "params": {"protocolVersion": "2099-01-01"},
        })
        assert response["result"]["protocolVersion"] == MCP_PROTOCOL_VERSION

    @pytest.mark.asyncio
    async def test_ping(self, handler: McpProtocolHandler) -> None:
        response = await handler.handle({"jsonrpc": "2.0", "id": "p", "method": "ping"})
        assert response == {"jsonrpc": "2.0", "id": "p", "result": {}}

    @pytest.mark.asyncio
    async def test_unknown_method(self, handler: McpProtocolHandler) -> None:
        response = await handler.handle({"jsonrpc": "2.0", "id": 2, "method": "resources/list"})
        assert response["error"]["code"] == METHOD_NOT_FOUND

    @pytest.mark.asyncio
    async def test_invalid_request_keeps_id(self, handler: McpProtocolHandler) -> None:
        response = await handler.handle({"jsonrpc": "2.0", "id": 5})
        assert response["id"] == 5
        assert response["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_tools_call_missing_name(self, handler: McpProtocolHandler) -> None:
        response = await handler.handle(
            {"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": {}}
        )
        assert response["error"]["code"] == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_unknown_tool_is_result_not_rpc_error(self, handler: McpProtocolHandler) -> None:
        response = await handler.handle({
            "jsonrpc": "2.0",
            "id": 4,
            "method": "tools/call",
            "params": {"name": "nonexistent_tool", "arguments": {}},
        })
        assert "error" not in response
        assert response["result"]["isError"] is True
        assert "Unknown tool" in response["result"]["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_tools_call_passes_session_context(self, dispatcher: ToolDispatcher) -> None:
        seen = {}

        async def fake_invoke(name, arguments, context=None):
            seen["context"] = context
            return await ToolDispatcher.invoke(dispatcher, name, arguments, context)

        dispatcher.invoke = fake_invoke  # type: ignore[method-assign]
        handler = McpProtocolHandler(dispatcher, ServerSettings())
        await handler.handle(
            {
                "jsonrpc": "2.0",
                "id": 9,
                "method": "tools/call",
                "params": {
                    "name": "query_project_status",
                    "arguments": {"query_type": "todo_list"},
                },
            },
            session_id="sess-1",
        )
        assert seen["context"].session_id == "sess-1"
        assert seen["context"].request_id == 9
