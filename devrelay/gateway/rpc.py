"""MCP protocol handler: one JSON-RPC message in, at most one response frame out.

Supported methods: initialize, ping, tools/list, tools/call, notifications/*.
Protocol-level problems become JSON-RPC error frames; tool failures are
reported inside a normal tools/call result with isError set.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from devrelay.constants import MCP_PROTOCOL_VERSION, SUPPORTED_PROTOCOL_VERSIONS
from devrelay.gateway.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    InitializeParams,
    ToolCallParams,
    error_frame,
    parse_rpc_message,
    result_frame,
)
from devrelay.infra.errors import GatewayError
from devrelay.tools.context import ToolContext

if TYPE_CHECKING:
    from devrelay.config.settings import ServerSettings
    from devrelay.gateway.dispatch import ToolDispatcher
    from devrelay.gateway.protocol import RPCRequest

logger = structlog.get_logger()


class McpProtocolHandler:
    """Resolve MCP requests against the tool dispatcher."""

    def __init__(self, dispatcher: ToolDispatcher, server: ServerSettings) -> None:
        self._dispatcher = dispatcher
        self._server = server

    async def handle(
        self, message: Any, *, session_id: str | None = None
    ) -> dict[str, Any] | None:
        """Return the response frame, or None for notifications."""
        raw_id = message.get("id") if isinstance(message, dict) else None
        try:
            request = parse_rpc_message(message)
        except GatewayError as e:
            logger.warning("rpc_invalid_request", session_id=session_id, error=str(e))
            request_id = raw_id if isinstance(raw_id, str | int) else None
            return error_frame(request_id, INVALID_REQUEST, str(e))

        if request.is_notification:
            logger.debug("rpc_notification", method=request.method, session_id=session_id)
            return None

        try:
            return await self._handle_request(request, session_id)
        except Exception:
            logger.exception(
                "rpc_unhandled_error",
                method=request.method,
                request_id=request.id,
                session_id=session_id,
            )
            return error_frame(request.id, INTERNAL_ERROR, "An internal error occurred")

    async def _handle_request(
        self, request: RPCRequest, session_id: str | None
    ) -> dict[str, Any]:
        method = request.method
        if method == "initialize":
            return result_frame(request.id, self._initialize(request.params))
        if method == "ping":
            return result_frame(request.id, {})
        if method == "tools/list":
            return result_frame(request.id, {"tools": self._dispatcher.registry.get_tools_schema()})
        if method == "tools/call":
            return await self._tools_call(request, session_id)

        logger.info("rpc_method_not_found", method=method, session_id=session_id)
        return error_frame(request.id, METHOD_NOT_FOUND, f"Unknown method: {method}")

    def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        try:
            parsed = InitializeParams.model_validate(params)
            requested = parsed.protocolVersion
        except ValidationError:
            requested = None
        # unsupported requests get our version; the client decides whether to continue
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else MCP_PROTOCOL_VERSION
        if requested and version != requested:
            logger.info("rpc_protocol_version_mismatch", requested=requested, answered=version)
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": self._server.name, "version": self._server.version},
        }

    async def _tools_call(
        self, request: RPCRequest, session_id: str | None
    ) -> dict[str, Any]:
        try:
            params = ToolCallParams.model_validate(request.params)
        except ValidationError as e:
            return error_frame(request.id, INVALID_PARAMS, f"Invalid tools/call params: {e}")

        context = ToolContext(session_id=session_id, request_id=request.id)
        envelope = await self._dispatcher.invoke(params.name, params.arguments, context)
        return result_frame(request.id, envelope.to_dict())
