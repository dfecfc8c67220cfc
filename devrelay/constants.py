from __future__ import annotations

TASK_PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "urgent")

STATUS_QUERY_TYPES: tuple[str, ...] = (
    "recent_changes",
    "active_features",
    "system_health",
    "todo_list",
)

MCP_PROTOCOL_VERSION = "2024-11-05"

SUPPORTED_PROTOCOL_VERSIONS: tuple[str, ...] = (MCP_PROTOCOL_VERSION,)
