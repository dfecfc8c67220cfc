from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from devrelay.infra.errors import SessionClosedError, SessionError, SessionNotFoundError

if TYPE_CHECKING:
    from devrelay.gateway.rpc import McpProtocolHandler
    from devrelay.session.connection import SseConnection

logger = structlog.get_logger()


class SessionState(StrEnum):
    open = "open"
    closed = "closed"


@dataclass
class Session:
    id: str
    connection: SseConnection
    state: SessionState = SessionState.open
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class SessionManager:
    """In-memory map of session id → SSE connection.

    Mutations happen synchronously on the event loop (open inserts, the
    connection close callback removes), so no lock is taken. A threaded
    runtime would need one around _sessions.
    """

    def __init__(
        self,
        protocol_handler: McpProtocolHandler,
        *,
        message_path: str = "/messages",
    ) -> None:
        self._sessions: dict[str, Session] = {}
        self._handler = protocol_handler
        self._message_path = message_path

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def endpoint_for(self, session_id: str) -> str:
        return f"{self._message_path}?sessionId={session_id}"

    def open_session(self, connection: SseConnection) -> str:
        """Bind a new session to the connection and announce its endpoint on it."""
        if connection.closed:
            raise SessionClosedError("Cannot open a session on a closed connection")

        session_id = uuid.uuid4().hex
        if session_id in self._sessions:
            raise SessionError(f"Session id collision: {session_id}", code="SESSION_ID_COLLISION")

        session = Session(id=session_id, connection=connection)
        self._sessions[session_id] = session
        connection.on_close(lambda: self._on_connection_closed(session))
        connection.send(self.endpoint_for(session_id), event="endpoint")

        logger.info("session_opened", session_id=session_id, active_sessions=self.active_count)
        return session_id

    async def route_message(self, session_id: str, message: Any) -> dict[str, Any] | None:
        """Resolve a message for the session and push the response over its stream.

        Returns the response frame (None for notifications).
        Raises SessionNotFoundError for unknown ids, SessionClosedError when the
        connection is gone before the response can be written.
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.connection.closed:
            raise SessionClosedError(f"Session {session_id} connection is closed")

        response = await self._handler.handle(message, session_id=session_id)
        if response is not None:
            session.connection.send(response)
        return response

    def close_session(self, session_id: str) -> bool:
        """Explicit teardown. Returns False if the session was not open."""
        session = self._sessions.get(session_id)
        if session is None:
            return False
        # removal happens in the connection's close callback
        session.connection.close()
        return True

    def close_all(self) -> int:
        """Close every open session (process shutdown). Returns how many were closed."""
        ids = list(self._sessions)
        for session_id in ids:
            self.close_session(session_id)
        return len(ids)

    def _on_connection_closed(self, session: Session) -> None:
        if session.state is SessionState.closed:
            return
        session.state = SessionState.closed
        if self._sessions.get(session.id) is session:
            del self._sessions[session.id]
        logger.info("session_closed", session_id=session.id, active_sessions=self.active_count)
