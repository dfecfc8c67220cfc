"""Core dispatch: tool lookup → optional strict validation → execute → envelope.

Every path returns a ToolResult. Handler exceptions are logged and converted
into error envelopes so a failing tool never tears down the SSE session.
"""

from __future__ import annotations

from typing import Any

import jsonschema
import structlog

from devrelay.infra.errors import ToolArgumentError
from devrelay.tools.context import ToolContext
from devrelay.tools.registry import ToolRegistry
from devrelay.tools.result import ToolResult

logger = structlog.get_logger()


def validate_arguments(schema: dict[str, Any], arguments: dict[str, Any]) -> None:
    """Check arguments against a tool's input schema.

    Raises ToolArgumentError with the first violation found.
    """
    validator = jsonschema.Draft7Validator(schema)
    error = jsonschema.exceptions.best_match(validator.iter_errors(arguments))
    if error is None:
        return
    location = ".".join(str(p) for p in error.absolute_path)
    detail = f"{location}: {error.message}" if location else error.message
    raise ToolArgumentError(detail)


def normalize_result(result: Any) -> ToolResult:
    """Coerce a handler return value into the envelope shape."""
    if isinstance(result, ToolResult):
        return result
    if isinstance(result, dict):
        return ToolResult.from_payload(result)
    if isinstance(result, str):
        return ToolResult.text(result)
    if result is None:
        return ToolResult.text("")
    return ToolResult.text(str(result))


class ToolDispatcher:
    """Resolves a tool name against the registry and runs its handler."""

    def __init__(self, registry: ToolRegistry, *, strict_validation: bool = False) -> None:
        self._registry = registry
        self._strict = strict_validation

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def strict_validation(self) -> bool:
        return self._strict

    async def invoke(
        self,
        tool_name: str,
        arguments: dict[str, Any] | None,
        context: ToolContext | None = None,
    ) -> ToolResult:
        """Invoke a tool. Never raises for handler failures; always returns an envelope."""
        session_id = context.session_id if context else None

        tool = self._registry.get(tool_name)
        if tool is None:
            logger.warning("unknown_tool", tool_name=tool_name, session_id=session_id)
            return ToolResult.error(f"Unknown tool: {tool_name}")

        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return ToolResult.error(
                f"Invalid arguments for {tool_name}: "
                f"expected an object, got {type(arguments).__name__}"
            )

        if self._strict:
            descriptor = self._registry.get_descriptor(tool_name)
            try:
                validate_arguments(descriptor.schema_dict(), arguments)
            except ToolArgumentError as e:
                logger.info(
                    "tool_arguments_rejected",
                    tool_name=tool_name,
                    session_id=session_id,
                    error=str(e),
                )
                return ToolResult.error(f"Invalid arguments for {tool_name}: {e}")

        try:
            result = await tool.execute(arguments, context)
        except Exception as e:
            logger.exception("tool_execution_failed", tool_name=tool_name, session_id=session_id)
            return ToolResult.error(f"Error executing tool {tool_name}: {e}")

        envelope = normalize_result(result)
        logger.info(
            "tool_executed",
            tool_name=tool_name,
            session_id=session_id,
            is_error=envelope.is_error,
        )
        return envelope
