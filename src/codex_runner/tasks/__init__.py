"""Task lifecycle: records, supervision, line reassembly and streaming."""

from codex_runner.tasks.channel import ChannelSubscription, TaskChannel
from codex_runner.tasks.errors import (
    InvalidInputError,
    InvalidStateError,
    SpawnError,
    TaskError,
    TaskNotFoundError,
)
from codex_runner.tasks.manager import TaskLifecycleManager, get_task_manager
from codex_runner.tasks.models import LogEntry, StreamEvent, TaskDetail, TaskSummary

__all__ = [
    "ChannelSubscription",
    "InvalidInputError",
    "InvalidStateError",
    "LogEntry",
    "SpawnError",
    "StreamEvent",
    "TaskChannel",
    "TaskDetail",
    "TaskError",
    "TaskLifecycleManager",
    "TaskNotFoundError",
    "TaskSummary",
    "get_task_manager",
]
