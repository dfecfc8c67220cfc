"""Capabilities: external collaborators injected into tool handlers."""

from devrelay.capabilities.code_search import CodeSearcher, FileExcerpt, SearchMatch
from devrelay.capabilities.geocoder import Geocoder, GeocodeResult, HttpGeocoder
from devrelay.capabilities.shell import ProjectInspector, ShellRunner
from devrelay.capabilities.task_store import TaskRecord, TaskStore

__all__ = [
    "CodeSearcher",
    "FileExcerpt",
    "GeocodeResult",
    "Geocoder",
    "HttpGeocoder",
    "ProjectInspector",
    "SearchMatch",
    "ShellRunner",
    "TaskRecord",
    "TaskStore",
]
