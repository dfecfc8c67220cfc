"""Tool result envelope: ordered text blocks plus an error flag."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal


@dataclass(frozen=True)
class ContentBlock:
    text: str
    type: Literal["text"] = "text"

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "text": self.text}


@dataclass(frozen=True)
class ToolResult:
    """Normalized result returned by every tool invocation, success or failure."""

    content: tuple[ContentBlock, ...]
    is_error: bool = False

    @classmethod
    def text(cls, text: str, *, is_error: bool = False) -> ToolResult:
        return cls(content=(ContentBlock(text=text),), is_error=is_error)

    @classmethod
    def error(cls, message: str) -> ToolResult:
        return cls.text(message, is_error=True)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ToolResult:
        """Render a handler dict as pretty JSON; error_code marks a tool-level failure."""
        text = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
        return cls.text(text, is_error="error_code" in payload)

    @property
    def joined_text(self) -> str:
        return "\n".join(block.text for block in self.content)

    def to_dict(self) -> dict[str, Any]:
        """MCP tools/call result shape."""
        return {
            "content": [block.to_dict() for block in self.content],
            "isError": self.is_error,
        }
