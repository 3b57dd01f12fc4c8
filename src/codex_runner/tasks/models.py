"""Task state, log entry and stream event models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

TaskState = Literal["queued", "running", "completed", "error", "canceled"]
StreamName = Literal["stdout", "stderr"]
EventType = Literal["status", "log", "heartbeat", "done"]

ACTIVE_STATES: frozenset[str] = frozenset({"queued", "running"})
TERMINAL_STATES: frozenset[str] = frozenset({"completed", "error", "canceled"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    return value.isoformat(timespec="milliseconds")


class LogEntry(BaseModel):
    """One reassembled output line."""

    line: str
    stream: StreamName
    ts: str = Field(description="ISO-8601 arrival timestamp")


class TaskSummary(BaseModel):
    """Task fields without the log."""

    id: str
    prompt: str
    cwd: str | None = None
    state: TaskState
    created_at: str
    updated_at: str
    exit_code: int | None = None
    error_message: str | None = None


class TaskDetail(TaskSummary):
    """Task summary plus the ordered log."""

    logs: list[LogEntry] = Field(default_factory=list)


class StreamEvent(BaseModel):
    """Typed event carried on a task channel."""

    type: EventType
    data: dict[str, Any]

    @classmethod
    def status(cls, state: str, ts: datetime, error: str | None = None) -> StreamEvent:
        data: dict[str, Any] = {"state": state, "ts": isoformat(ts)}
        if error:
            data["error"] = error
        return cls(type="status", data=data)

    @classmethod
    def log(cls, entry: LogEntry) -> StreamEvent:
        return cls(type="log", data=entry.model_dump())

    @classmethod
    def heartbeat(cls, ts: datetime) -> StreamEvent:
        return cls(type="heartbeat", data={"ts": isoformat(ts)})

    @classmethod
    def done(cls, exit_code: int | None, state: str) -> StreamEvent:
        return cls(
            type="done",
            data={"exit_code": -1 if exit_code is None else exit_code, "state": state},
        )
