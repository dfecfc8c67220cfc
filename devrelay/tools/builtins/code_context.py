"""get_code_context tool: file excerpt and first query match from the source tree."""

from __future__ import annotations

from typing import TYPE_CHECKING

from devrelay.infra.errors import CapabilityError
from devrelay.tools.base import BaseTool

if TYPE_CHECKING:
    from devrelay.capabilities.code_search import CodeSearcher
    from devrelay.tools.context import ToolContext


class CodeContextTool(BaseTool):
    """Describe a file and optionally locate a query in the project.

    Without a searcher the tool answers with a placeholder analysis.
    """

    def __init__(self, searcher: CodeSearcher | None = None) -> None:
        self._searcher = searcher

    @property
    def name(self) -> str:
        return "get_code_context"

    @property
    def description(self) -> str:
        return "Get information about specific code files, components, or functions in the project."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": (
                        "Path to the file or component to analyze "
                        "(e.g., 'client/src/pages/Home.tsx')"
                    ),
                },
                "query": {
                    "type": "string",
                    "description": "Specific question about the code or what you're looking for",
                },
            },
            "required": ["file_path"],
        }

    async def execute(
        self, arguments: dict, context: ToolContext | None = None
    ) -> dict:
        file_path = arguments.get("file_path")
        if not isinstance(file_path, str) or not file_path.strip():
            return {"error_code": "MISSING_ARGUMENT", "message": "file_path is required."}
        query = arguments.get("query")
        if query is not None and not isinstance(query, str):
            query = str(query)

        if self._searcher is None:
            return {
                "file": file_path,
                "query": query or "General file information",
                "analysis": f"Code context for {file_path}",
                "note": "Source search is not configured; no file content was read.",
                "suggestion": "Use this tool to understand code structure before making changes.",
            }

        try:
            excerpt = await self._searcher.read_excerpt(file_path)
        except CapabilityError as e:
            return {"error_code": e.code, "message": str(e)}

        response: dict = {"file": file_path, "query": query or "General file information"}
        if excerpt is None:
            response["exists"] = False
        else:
            response.update(
                exists=True,
                line_count=excerpt.line_count,
                excerpt=excerpt.excerpt,
                truncated=excerpt.truncated,
            )

        if query:
            match = await self._searcher.search(query)
            response["match"] = (
                None
                if match is None
                else {
                    "path": match.path,
                    "line_number": match.line_number,
                    "line": match.line,
                    "excerpt": match.excerpt,
                }
            )
        return response
