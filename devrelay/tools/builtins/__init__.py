from __future__ import annotations

from typing import TYPE_CHECKING

from devrelay.tools.builtins.code_context import CodeContextTool
from devrelay.tools.builtins.create_task import CreateTaskTool
from devrelay.tools.builtins.project_status import ProjectStatusTool
from devrelay.tools.builtins.validate_address import ValidateAddressTool
from devrelay.tools.registry import ToolRegistry

if TYPE_CHECKING:
    from devrelay.capabilities.code_search import CodeSearcher
    from devrelay.capabilities.geocoder import Geocoder
    from devrelay.capabilities.shell import ProjectInspector
    from devrelay.capabilities.task_store import TaskStore


def register_builtins(
    registry: ToolRegistry,
    *,
    task_store: TaskStore | None = None,
    inspector: ProjectInspector | None = None,
    searcher: CodeSearcher | None = None,
    geocoder: Geocoder | None = None,
    default_priority: str = "medium",
) -> None:
    """Register all built-in tools with the registry.

    The three core tools are always registered (graceful degradation when their
    capability is None). validate_address is registered only with a geocoder.
    """
    registry.register(CreateTaskTool(task_store, default_priority=default_priority))
    registry.register(ProjectStatusTool(inspector, task_store))
    registry.register(CodeContextTool(searcher))

    if geocoder is not None:
        registry.register(ValidateAddressTool(geocoder))
