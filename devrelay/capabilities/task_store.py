"""Task store: one Markdown file per created task.

Responsibilities:
- Render a fixed Markdown template for a task record
- Write <tasks_dir>/<task_id>.md (create directory if missing)
- List pending task ids for status reporting
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import structlog

logger = structlog.get_logger()

_STATUS_LINE = re.compile(r"^- \*\*Status:\*\* (\w+)", re.MULTILINE)


@dataclass(frozen=True)
class TaskRecord:
    task_id: str
    description: str
    priority: str
    context: str | None = None
    status: str = "pending"
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


def render_task_markdown(record: TaskRecord) -> str:
    return (
        f"# Task {record.task_id}\n"
        f"\n"
        f"- **Priority:** {record.priority}\n"
        f"- **Status:** {record.status}\n"
        f"- **Created:** {record.created_at.isoformat()}\n"
        f"\n"
        f"## Description\n"
        f"\n"
        f"{record.description}\n"
        f"\n"
        f"## Context\n"
        f"\n"
        f"{record.context or 'None provided'}\n"
    )


class TaskStore:
    """Persist task records as Markdown files under a single directory."""

    def __init__(self, tasks_dir: Path) -> None:
        self._tasks_dir = tasks_dir

    @property
    def tasks_dir(self) -> Path:
        return self._tasks_dir

    def path_for(self, task_id: str) -> Path:
        return self._tasks_dir / f"{task_id}.md"

    def exists(self, task_id: str) -> bool:
        return self.path_for(task_id).exists()

    async def save(self, record: TaskRecord) -> Path:
        """Write the task file. Raises OSError if the directory or file is not writable."""
        return await asyncio.to_thread(self._write, record)

    def _write(self, record: TaskRecord) -> Path:
        self._tasks_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(record.task_id)
        content = render_task_markdown(record)
        path.write_text(content, encoding="utf-8")
        logger.info(
            "task_file_written",
            path=str(path),
            task_id=record.task_id,
            priority=record.priority,
            bytes_written=len(content.encode("utf-8")),
        )
        return path

    async def pending_task_ids(self) -> list[str]:
        return await asyncio.to_thread(self._scan_pending)

    def _scan_pending(self) -> list[str]:
        if not self._tasks_dir.is_dir():
            return []
        pending: list[str] = []
        for path in sorted(self._tasks_dir.glob("*.md")):
            try:
                text = path.read_text(encoding="utf-8")
            except OSError:
                logger.warning("task_file_unreadable", path=str(path))
                continue
            match = _STATUS_LINE.search(text)
            if match is None or match.group(1) == "pending":
                pending.append(path.stem)
        return pending

    async def check_writable(self) -> str:
        """Health probe: "writable", "unwritable", or "missing" when not yet created."""
        return await asyncio.to_thread(self._probe_writable)

    def _probe_writable(self) -> str:
        if not self._tasks_dir.exists():
            return "missing"
        if not self._tasks_dir.is_dir():
            return "unwritable"
        probe = self._tasks_dir / ".write_probe"
        try:
            probe.write_text("", encoding="utf-8")
            probe.unlink()
        except OSError:
            return "unwritable"
        return "writable"
