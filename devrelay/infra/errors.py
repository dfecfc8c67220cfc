"""Custom exception hierarchy for devrelay.

All application-specific exceptions inherit from RelayError,
which carries an error code for HTTP / JSON-RPC error mapping.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for all devrelay errors."""

    def __init__(self, message: str, *, code: str = "INTERNAL_ERROR") -> None:
        super().__init__(message)
        self.code = code


class GatewayError(RelayError):
    """Errors in the HTTP / SSE boundary layer."""

    def __init__(self, message: str, *, code: str = "GATEWAY_ERROR") -> None:
        super().__init__(message, code=code)


class SessionError(RelayError):
    """Errors in session bookkeeping."""

    def __init__(self, message: str, *, code: str = "SESSION_ERROR") -> None:
        super().__init__(message, code=code)


class SessionNotFoundError(SessionError):
    """No open session is registered under the given id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}", code="SESSION_NOT_FOUND")
        self.session_id = session_id


class SessionClosedError(SessionError):
    """The session's connection was torn down before the write happened."""

    def __init__(self, message: str = "Session connection is closed") -> None:
        super().__init__(message, code="SESSION_CLOSED")


class ToolError(RelayError):
    """Errors during tool execution."""

    def __init__(self, message: str, *, code: str = "TOOL_ERROR") -> None:
        super().__init__(message, code=code)


class ToolArgumentError(ToolError):
    """Tool arguments failed strict schema validation."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVALID_ARGUMENTS")


class CapabilityError(RelayError):
    """Errors from an external collaborator (filesystem, shell, HTTP)."""

    def __init__(self, message: str, *, code: str = "CAPABILITY_ERROR") -> None:
        super().__init__(message, code=code)


class GeocoderError(CapabilityError):
    """Geocoding endpoint unreachable or returned an unusable reply."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="GEOCODER_UNAVAILABLE")


class ShellError(CapabilityError):
    """Subprocess failed, timed out, or its binary is missing."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="SHELL_ERROR")
