"""Utility modules for qgate."""

from .logging import EventType, GateLogger, LogEntry
from .project import find_project_root, resolve_in_project

__all__ = [
    "find_project_root",
    "resolve_in_project",
    "EventType",
    "GateLogger",
    "LogEntry",
]
