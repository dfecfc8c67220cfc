"""Shared pytest fixtures for devrelay tests.

Capabilities are built against tmp_path so no test touches the real checkout.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from devrelay.capabilities.code_search import CodeSearcher
from devrelay.capabilities.task_store import TaskStore
from devrelay.config.settings import ServerSettings
from devrelay.gateway.dispatch import ToolDispatcher
from devrelay.gateway.rpc import McpProtocolHandler
from devrelay.session.manager import SessionManager
from devrelay.tools.builtins import register_builtins
from devrelay.tools.registry import ToolRegistry


@pytest.fixture()
def task_store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "tasks")


@pytest.fixture()
def source_tree(tmp_path: Path) -> Path:
    """A small project tree with a few text files and one binary file."""
    root = tmp_path / "project"
    (root / "app").mkdir(parents=True)
    (root / "app" / "login.py").write_text(
        "def login(user):\n"
        "    # TODO validate password\n"
        "    return authenticate(user)\n",
        encoding="utf-8",
    )
    (root / "README.md").write_text("# Demo project\n", encoding="utf-8")
    (root / "logo.png").write_bytes(b"\x89PNG\x00\x00binary authenticate")
    return root


@pytest.fixture()
def registry(task_store: TaskStore, source_tree: Path) -> ToolRegistry:
    reg = ToolRegistry()
    register_builtins(
        reg,
        task_store=task_store,
        searcher=CodeSearcher(source_tree),
    )
    reg.seal()
    return reg


@pytest.fixture()
def dispatcher(registry: ToolRegistry) -> ToolDispatcher:
    return ToolDispatcher(registry)


@pytest.fixture()
def session_manager(dispatcher: ToolDispatcher) -> SessionManager:
    handler = McpProtocolHandler(dispatcher, ServerSettings())
    return SessionManager(handler)
