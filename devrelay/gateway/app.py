from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from devrelay import __version__
from devrelay.capabilities.code_search import CodeSearcher
from devrelay.capabilities.geocoder import HttpGeocoder
from devrelay.capabilities.shell import ProjectInspector, ShellRunner
from devrelay.capabilities.task_store import TaskStore
from devrelay.config.settings import Settings, get_settings
from devrelay.gateway.dispatch import ToolDispatcher
from devrelay.gateway.rpc import McpProtocolHandler
from devrelay.infra.errors import RelayError, SessionNotFoundError
from devrelay.infra.logging import setup_logging
from devrelay.session.connection import SseConnection
from devrelay.session.manager import SessionManager
from devrelay.tools.builtins import register_builtins
from devrelay.tools.registry import ToolRegistry

logger = structlog.get_logger()

SSE_PATH = "/sse"
MESSAGE_PATH = "/messages"


def build_tool_registry(settings: Settings) -> ToolRegistry:
    """Wire capabilities from settings, register built-ins, and seal the catalog."""
    tool_settings = settings.tools

    task_store = TaskStore(tool_settings.tasks_dir) if tool_settings.tasks_dir else None
    inspector = None
    if tool_settings.project_root:
        inspector = ProjectInspector(
            tool_settings.project_root,
            ShellRunner(timeout_seconds=tool_settings.shell_timeout_seconds),
            commit_limit=tool_settings.status_commit_limit,
        )
    searcher = None
    if tool_settings.search_root:
        searcher = CodeSearcher(
            tool_settings.search_root,
            excerpt_lines=tool_settings.excerpt_lines,
            max_file_bytes=tool_settings.search_max_file_bytes,
            max_files=tool_settings.search_max_files,
        )
    geocoder = None
    if settings.geocoder.url:
        geocoder = HttpGeocoder(
            settings.geocoder.url, timeout_seconds=settings.geocoder.timeout_seconds
        )

    registry = ToolRegistry()
    register_builtins(
        registry,
        task_store=task_store,
        inspector=inspector,
        searcher=searcher,
        geocoder=geocoder,
        default_priority=tool_settings.default_priority,
    )
    registry.seal()
    return registry


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize shared state on startup, close sessions on exit."""
    settings = get_settings()
    setup_logging(json_output=settings.logging.json_output, log_level=settings.logging.level)

    registry = build_tool_registry(settings)
    dispatcher = ToolDispatcher(registry, strict_validation=settings.tools.strict_validation)
    protocol_handler = McpProtocolHandler(dispatcher, settings.server)
    session_manager = SessionManager(protocol_handler, message_path=MESSAGE_PATH)

    app.state.settings = settings
    app.state.tool_registry = registry
    app.state.dispatcher = dispatcher
    app.state.session_manager = session_manager
    logger.info(
        "gateway_started",
        host=settings.gateway.host,
        port=settings.gateway.port,
        tools=[d.name for d in registry.list_tools()],
        strict_validation=settings.tools.strict_validation,
    )

    yield

    # No drain: queued frames flush only if the server keeps the stream alive
    closed = session_manager.close_all()
    logger.info("gateway_stopped", closed_sessions=closed)


app = FastAPI(title="devrelay", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _session_frames(
    session_manager: SessionManager, connection: SseConnection, request: Request
) -> AsyncIterator[str]:
    # Opened on first iteration: a client gone before the body starts never gets a session
    try:
        session_id = session_manager.open_session(connection)
        logger.info("sse_connected", session_id=session_id)
        async for frame in connection.stream(request.is_disconnected):
            yield frame
    finally:
        connection.close()


@app.get(SSE_PATH)
async def sse_endpoint(request: Request) -> StreamingResponse:
    """Open a streaming session; the first frame announces the message endpoint."""
    session_manager: SessionManager = request.app.state.session_manager
    settings: Settings = request.app.state.settings

    connection = SseConnection(keepalive_seconds=settings.gateway.keepalive_seconds)
    return StreamingResponse(
        _session_frames(session_manager, connection, request),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.post(MESSAGE_PATH)
async def messages_endpoint(
    request: Request,
    session_id: str | None = Query(None, alias="sessionId"),
) -> JSONResponse:
    """Route one JSON-RPC message to its session; the response goes over the stream."""
    if not session_id:
        logger.warning("message_without_session_id")
        return _error(400, "sessionId is required")

    session_manager: SessionManager = request.app.state.session_manager
    if session_id not in session_manager:
        logger.warning("message_unknown_session", session_id=session_id)
        return _error(404, "Session not found")

    try:
        message: Any = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("message_invalid_json", session_id=session_id)
        return _error(400, "Invalid JSON body")

    try:
        await session_manager.route_message(session_id, message)
    except SessionNotFoundError:
        # closed between the membership check and routing
        return _error(404, "Session not found")
    except RelayError as e:
        logger.warning("message_route_failed", session_id=session_id, code=e.code, error=str(e))
        return _error(500, str(e))
    except Exception:
        logger.exception("message_route_unhandled", session_id=session_id)
        return _error(500, "An internal error occurred")

    return JSONResponse({"status": "accepted"}, status_code=202)


@app.get("/health")
async def health(request: Request) -> dict[str, Any]:
    settings: Settings = request.app.state.settings
    session_manager: SessionManager = request.app.state.session_manager
    return {
        "status": "healthy",
        "server": settings.server.name,
        "version": settings.server.version,
        "active_sessions": session_manager.active_count,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.get("/")
async def root(request: Request) -> dict[str, Any]:
    settings: Settings = request.app.state.settings
    registry: ToolRegistry = request.app.state.tool_registry
    session_manager: SessionManager = request.app.state.session_manager
    return {
        "name": settings.server.name,
        "version": settings.server.version,
        "description": settings.server.description,
        "endpoints": {
            "sse": f"GET {SSE_PATH}",
            "messages": f"POST {MESSAGE_PATH}",
            "health": "GET /health",
        },
        "tools": [
            {"name": d.name, "description": d.description} for d in registry.list_tools()
        ],
        "active_sessions": session_manager.active_count,
    }
