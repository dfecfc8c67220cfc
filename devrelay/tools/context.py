from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ToolContext:
    """Runtime context injected into tool execution by the protocol handler.

    session_id: id of the SSE session the call arrived on (for audit/logging).
    request_id: JSON-RPC request id, when the call carried one.
    """

    session_id: str | None = None
    request_id: str | int | None = None
