from __future__ import annotations

import structlog

from devrelay.tools.base import BaseTool, ToolDescriptor

logger = structlog.get_logger()


class ToolRegistry:
    """Registry for relay tools. Fixed once sealed at startup."""

    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}
        self._descriptors: dict[str, ToolDescriptor] = {}
        self._sealed = False

    def register(self, tool: BaseTool) -> None:
        """Register a tool. Raises ValueError on duplicate name or after seal()."""
        if self._sealed:
            raise ValueError(f"Registry is sealed; cannot register: {tool.name}")
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool
        self._descriptors[tool.name] = tool.descriptor()
        logger.info("tool_registered", tool_name=tool.name)

    def seal(self) -> None:
        """Freeze the catalog. Further register() calls raise."""
        self._sealed = True
        logger.info("tool_registry_sealed", tools=list(self._tools))

    @property
    def sealed(self) -> bool:
        return self._sealed

    def get(self, name: str) -> BaseTool | None:
        """Get a tool by name. Returns None if not found."""
        return self._tools.get(name)

    def get_descriptor(self, name: str) -> ToolDescriptor | None:
        return self._descriptors.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def list_tools(self) -> list[ToolDescriptor]:
        """Return descriptors in registration order."""
        return list(self._descriptors.values())

    def get_tools_schema(self) -> list[dict]:
        """Return tools in MCP tools/list format.

        Output format:
        [{"name": ..., "description": ..., "inputSchema": {...}}]
        """
        return [descriptor.to_dict() for descriptor in self._descriptors.values()]
