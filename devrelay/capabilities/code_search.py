"""Code search: path-safe file excerpts and first-match text search over a source tree."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path

import structlog

from devrelay.infra.errors import CapabilityError

logger = structlog.get_logger()

_SKIP_DIRS = frozenset({
    ".git", ".hg", ".svn", "node_modules", "__pycache__", ".venv", "venv",
    ".mypy_cache", ".pytest_cache", ".ruff_cache", "dist", "build",
})


@dataclass(frozen=True)
class FileExcerpt:
    path: str
    line_count: int
    excerpt: str
    truncated: bool


@dataclass(frozen=True)
class SearchMatch:
    path: str
    line_number: int
    line: str
    excerpt: str


class CodeSearcher:
    """Read and search text files below a root directory."""

    def __init__(
        self,
        search_root: Path,
        *,
        excerpt_lines: int = 40,
        max_file_bytes: int = 512_000,
        max_files: int = 5_000,
        context_lines: int = 3,
    ) -> None:
        self._root = search_root.resolve()
        self._excerpt_lines = excerpt_lines
        self._max_file_bytes = max_file_bytes
        self._max_files = max_files
        self._context_lines = context_lines

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, raw_path: str) -> Path:
        """Resolve a root-relative path.

        Raises CapabilityError(code="ACCESS_DENIED") for absolute paths or
        anything that resolves outside the root (.., symlinks).
        """
        if os.path.isabs(raw_path):
            raise CapabilityError(
                "Absolute paths are not allowed. Use a path relative to the project root.",
                code="ACCESS_DENIED",
            )
        target = (self._root / raw_path).resolve()
        if not target.is_relative_to(self._root):
            logger.warning("path_escape_blocked", raw_path=raw_path, target=str(target))
            raise CapabilityError("Path escapes project root.", code="ACCESS_DENIED")
        return target

    async def read_excerpt(self, raw_path: str) -> FileExcerpt | None:
        """Return the head of a file, or None if it does not exist."""
        target = self.resolve(raw_path)
        if not target.is_file():
            return None
        return await asyncio.to_thread(self._read_head, target, raw_path)

    def _read_head(self, target: Path, raw_path: str) -> FileExcerpt:
        try:
            text = target.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise CapabilityError(f"Failed to read file: {e}", code="READ_ERROR") from e
        lines = text.splitlines()
        head = lines[: self._excerpt_lines]
        return FileExcerpt(
            path=raw_path,
            line_count=len(lines),
            excerpt="\n".join(head),
            truncated=len(lines) > len(head),
        )

    async def search(self, query: str) -> SearchMatch | None:
        """Case-insensitive substring search; returns the first match in walk order."""
        if not query.strip():
            return None
        return await asyncio.to_thread(self._search, query)

    def _search(self, query: str) -> SearchMatch | None:
        needle = query.lower()
        scanned = 0
        for dirpath, dirnames, filenames in os.walk(self._root):
            dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
            for filename in sorted(filenames):
                if scanned >= self._max_files:
                    logger.info("code_search_file_limit", query=query, scanned=scanned)
                    return None
                path = Path(dirpath) / filename
                lines = self._read_text_lines(path)
                if lines is None:
                    continue
                scanned += 1
                for idx, line in enumerate(lines):
                    if needle in line.lower():
                        return self._build_match(path, lines, idx)
        return None

    def _read_text_lines(self, path: Path) -> list[str] | None:
        try:
            if path.is_symlink() or path.stat().st_size > self._max_file_bytes:
                return None
            data = path.read_bytes()
        except OSError:
            return None
        if b"\x00" in data[:1024]:
            return None
        return data.decode("utf-8", errors="replace").splitlines()

    def _build_match(self, path: Path, lines: list[str], idx: int) -> SearchMatch:
        start = max(0, idx - self._context_lines)
        end = min(len(lines), idx + self._context_lines + 1)
        excerpt = "\n".join(
            f"{n + 1:>5}: {lines[n]}" for n in range(start, end)
        )
        return SearchMatch(
            path=path.relative_to(self._root).as_posix(),
            line_number=idx + 1,
            line=lines[idx].strip(),
            excerpt=excerpt,
        )
