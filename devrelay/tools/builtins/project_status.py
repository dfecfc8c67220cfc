"""query_project_status tool: canned catalogs plus lightly assembled live status."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from devrelay.constants import STATUS_QUERY_TYPES
from devrelay.infra.errors import CapabilityError
from devrelay.tools.base import BaseTool

if TYPE_CHECKING:
    from devrelay.capabilities.shell import ProjectInspector
    from devrelay.capabilities.task_store import TaskStore
    from devrelay.tools.context import ToolContext

logger = structlog.get_logger()

ACTIVE_FEATURES = {
    "completed": [
        "SSE session transport",
        "Tool registry and dispatcher",
        "Task creation",
        "Health endpoint",
    ],
    "in_progress": [
        "Code context search",
        "Address validation",
    ],
    "planned": [
        "Task status updates",
        "Per-request cancellation",
    ],
}

TODO_LIST = {
    "high_priority": [
        "Test end-to-end tool call flow",
        "Wire client reconnection handling",
    ],
    "medium_priority": [
        "Add task status transitions",
        "Document the tool catalog",
    ],
    "low_priority": [
        "Performance tuning",
        "Extended analytics",
    ],
}


_HEALTHY_STATES = frozenset({"operational", "readable", "writable", "missing"})


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class ProjectStatusTool(BaseTool):
    """Report project status by category.

    Live sub-steps (git log, directory listing, task scan) fail independently;
    a failed step is reported as "unavailable: <reason>" instead of failing the call.
    """

    def __init__(
        self,
        inspector: ProjectInspector | None = None,
        store: TaskStore | None = None,
    ) -> None:
        self._inspector = inspector
        self._store = store

    @property
    def name(self) -> str:
        return "query_project_status"

    @property
    def description(self) -> str:
        return (
            "Check the current status of the project, including recent changes, "
            "active features, and system health."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "query_type": {
                    "type": "string",
                    "enum": list(STATUS_QUERY_TYPES),
                    "description": "Type of status information to retrieve",
                },
            },
            "required": ["query_type"],
        }

    async def execute(
        self, arguments: dict, context: ToolContext | None = None
    ) -> dict:
        query_type = arguments.get("query_type")
        if query_type == "recent_changes":
            return await self._recent_changes()
        if query_type == "active_features":
            return {key: list(items) for key, items in ACTIVE_FEATURES.items()}
        if query_type == "system_health":
            return await self._system_health()
        if query_type == "todo_list":
            return await self._todo_list()
        return {
            "error_code": "INVALID_ARGUMENT",
            "message": (
                f"query_type must be one of {list(STATUS_QUERY_TYPES)} (got '{query_type}')"
            ),
        }

    async def _recent_changes(self) -> dict:
        status: dict = {"last_updated": _now_iso()}
        if self._inspector is None:
            status["recent_commits"] = "unavailable: no project root configured"
            status["project_files"] = "unavailable: no project root configured"
            return status

        try:
            status["recent_commits"] = await self._inspector.recent_commits()
        except CapabilityError as e:
            logger.info("status_git_log_unavailable", error=str(e))
            status["recent_commits"] = f"unavailable: {e}"

        try:
            status["project_files"] = await self._inspector.list_entries()
        except CapabilityError as e:
            logger.info("status_listing_unavailable", error=str(e))
            status["project_files"] = f"unavailable: {e}"
        return status

    async def _system_health(self) -> dict:
        checks: dict[str, str] = {"api_endpoints": "operational"}
        if self._inspector is not None:
            readable = await self._inspector.is_readable()
            checks["project_root"] = "readable" if readable else "unreadable"
        if self._store is not None:
            checks["task_store"] = await self._store.check_writable()

        # a missing task dir is created on the first save
        healthy = all(v in _HEALTHY_STATES for v in checks.values())
        if not healthy:
            logger.warning("status_health_degraded", checks=checks)
        return {
            "status": "healthy" if healthy else "degraded",
            **checks,
            "last_check": _now_iso(),
        }

    async def _todo_list(self) -> dict:
        todo: dict = {key: list(items) for key, items in TODO_LIST.items()}
        if self._store is None:
            return todo
        try:
            todo["pending_tasks"] = await self._store.pending_task_ids()
        except OSError as e:
            logger.info("status_task_scan_unavailable", error=str(e))
            todo["pending_tasks"] = f"unavailable: {e}"
        return todo
