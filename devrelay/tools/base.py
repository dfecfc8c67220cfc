from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from devrelay.tools.context import ToolContext
    from devrelay.tools.result import ToolResult


@dataclass(frozen=True)
class ToolDescriptor:
    """Immutable catalog entry for a registered tool.

    input_schema is a JSON Schema object; it is wrapped read-only at
    construction and deep-copied whenever it leaves the descriptor.
    """

    name: str
    description: str
    input_schema: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "input_schema", MappingProxyType(copy.deepcopy(dict(self.input_schema)))
        )

    @property
    def required(self) -> tuple[str, ...]:
        return tuple(self.input_schema.get("required", ()))

    def schema_dict(self) -> dict[str, Any]:
        return copy.deepcopy(dict(self.input_schema))

    def to_dict(self) -> dict[str, Any]:
        """MCP tools/list entry."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.schema_dict(),
        }


class BaseTool(ABC):
    """Abstract base class for relay tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique tool name used in tools/call."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what the tool does."""
        ...

    @property
    @abstractmethod
    def parameters(self) -> dict:
        """JSON Schema describing the tool's input parameters."""
        ...

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            input_schema=self.parameters,
        )

    @abstractmethod
    async def execute(
        self, arguments: dict, context: ToolContext | None = None
    ) -> dict | str | ToolResult:
        """Execute the tool with the raw argument bag and optional runtime context.

        Return a dict (rendered as JSON text), a plain string, or a ToolResult.
        Expected failures are reported as {"error_code": ..., "message": ...};
        anything raised is converted to an error envelope by the dispatcher.
        """
        ...
