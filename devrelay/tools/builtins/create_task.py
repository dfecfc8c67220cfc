"""create_task tool: record a development task and acknowledge it."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

from devrelay.capabilities.task_store import TaskRecord
from devrelay.constants import TASK_PRIORITIES
from devrelay.tools.base import BaseTool

if TYPE_CHECKING:
    from devrelay.capabilities.task_store import TaskStore
    from devrelay.tools.context import ToolContext

logger = structlog.get_logger()

_NEXT_STEPS = [
    "The request will be analyzed",
    "Code changes will be implemented",
    "Changes will be tested",
    "Updates will be deployed",
]


class CreateTaskTool(BaseTool):
    """Create a task record; persist it when a task store is configured.

    A write failure degrades to a text-only acknowledgement (saved=false).
    """

    def __init__(
        self,
        store: TaskStore | None = None,
        *,
        default_priority: str = "medium",
    ) -> None:
        self._store = store
        self._default_priority = default_priority
        self._last_id_ms = 0

    @property
    def name(self) -> str:
        return "create_task"

    @property
    def description(self) -> str:
        return (
            "Create a development task. Use this when you need to build features, "
            "fix bugs, or make changes to the codebase."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "task_description": {
                    "type": "string",
                    "description": (
                        "Clear description of what needs to be built or fixed. "
                        "Be specific about the feature, bug, or change required."
                    ),
                },
                "priority": {
                    "type": "string",
                    "enum": list(TASK_PRIORITIES),
                    "description": "Priority level of the task",
                },
                "context": {
                    "type": "string",
                    "description": (
                        "Additional context about why this task is needed "
                        "or what problem it solves"
                    ),
                },
            },
            "required": ["task_description"],
        }

    def _next_task_id(self) -> str:
        now_ms = int(time.time() * 1000)
        if now_ms <= self._last_id_ms:
            now_ms = self._last_id_ms + 1
        if self._store is not None:
            while self._store.exists(f"task_{now_ms}"):
                now_ms += 1
        self._last_id_ms = now_ms
        return f"task_{now_ms}"

    async def execute(
        self, arguments: dict, context: ToolContext | None = None
    ) -> dict:
        # "title" / "description" are accepted as aliases from older clients
        description = arguments.get("task_description") or arguments.get("title")
        if not isinstance(description, str) or not description.strip():
            return {
                "error_code": "MISSING_ARGUMENT",
                "message": "task_description is required.",
            }

        priority = arguments.get("priority") or self._default_priority
        if priority not in TASK_PRIORITIES:
            return {
                "error_code": "INVALID_ARGUMENT",
                "message": f"priority must be one of {list(TASK_PRIORITIES)} (got '{priority}')",
            }

        extra = arguments.get("context") or arguments.get("description")
        task_context = str(extra) if extra else None

        task_id = self._next_task_id()
        response: dict = {
            "task_id": task_id,
            "status": "created",
            "message": f'Task created successfully: "{description}"',
            "priority": priority,
            "estimated_time": "Task will be processed by the developer agent",
            "next_steps": list(_NEXT_STEPS),
        }

        if self._store is None:
            return response

        record = TaskRecord(
            task_id=task_id,
            description=description,
            priority=priority,
            context=task_context,
        )
        try:
            path = await self._store.save(record)
        except OSError as e:
            logger.warning(
                "task_file_write_failed",
                task_id=task_id,
                session_id=context.session_id if context else None,
                error=str(e),
            )
            response["saved"] = False
            response["note"] = f"Task acknowledged but could not be saved: {e}"
            return response

        response["saved"] = True
        response["file"] = str(path)
        return response
