"""Codex runner MCP tool implementations."""

from . import (
    cancel_task,
    create_task,
    get_task,
    list_tasks,
    stream_task,
)

__all__ = [
    "create_task",
    "list_tasks",
    "get_task",
    "stream_task",
    "cancel_task",
]
