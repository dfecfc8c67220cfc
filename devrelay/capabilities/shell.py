"""Shell access for project introspection (git history, directory listing)."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from devrelay.infra.errors import ShellError

logger = structlog.get_logger()


class ShellRunner:
    """Run a command without a shell and return its stdout.

    Every call is bounded by timeout_seconds; the child is killed on expiry.
    """

    def __init__(self, *, timeout_seconds: float = 5.0) -> None:
        self._timeout = timeout_seconds

    async def run(self, *command: str, cwd: Path | None = None) -> str:
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise ShellError(f"missing binary while running {' '.join(command)}: {exc}") from exc
        except OSError as exc:
            raise ShellError(f"could not start {' '.join(command)}: {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise ShellError(
                f"{' '.join(command)} timed out after {self._timeout:g}s"
            ) from exc

        if proc.returncode != 0:
            message = stderr.decode(errors="replace").strip() or stdout.decode(
                errors="replace"
            ).strip()
            raise ShellError(message or f"command failed: {' '.join(command)}")
        return stdout.decode(errors="replace").strip()


class ProjectInspector:
    """Read-only view of a project checkout: recent commits and top-level entries."""

    def __init__(
        self,
        project_root: Path,
        runner: ShellRunner,
        *,
        commit_limit: int = 10,
    ) -> None:
        self._root = project_root
        self._runner = runner
        self._commit_limit = commit_limit

    @property
    def project_root(self) -> Path:
        return self._root

    async def recent_commits(self) -> list[str]:
        """Return `git log --oneline` lines, newest first. Raises ShellError."""
        output = await self._runner.run(
            "git", "log", "--oneline", "-n", str(self._commit_limit), cwd=self._root
        )
        return [line for line in output.splitlines() if line.strip()]

    async def list_entries(self) -> list[str]:
        """Return sorted top-level entries; directories carry a trailing '/'."""
        try:
            return await asyncio.to_thread(self._scan_root)
        except OSError as exc:
            raise ShellError(f"cannot list {self._root}: {exc}") from exc

    def _scan_root(self) -> list[str]:
        entries = []
        for child in sorted(self._root.iterdir(), key=lambda p: p.name):
            if child.name.startswith("."):
                continue
            entries.append(f"{child.name}/" if child.is_dir() else child.name)
        return entries

    async def is_readable(self) -> bool:
        return await asyncio.to_thread(self._probe_readable)

    def _probe_readable(self) -> bool:
        try:
            next(iter(self._root.iterdir()), None)
        except OSError:
            return False
        return True
