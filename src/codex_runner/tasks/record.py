"""In-memory state of one task."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from codex_runner.tasks.channel import TaskChannel
from codex_runner.tasks.heartbeat import HeartbeatTicker
from codex_runner.tasks.models import LogEntry, TaskDetail, TaskSummary, isoformat, utc_now
from codex_runner.tasks.supervisor import ProcessSupervisor


@dataclass
class PendingOutcome:
    state: str
    message: str | None = None


@dataclass
class TaskRecord:
    id: str
    prompt: str
    cwd: str | None
    state: str = "queued"
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime | None = None
    exit_code: int | None = None
    error_message: str | None = None
    logs: list[LogEntry] = field(default_factory=list)
    channel: TaskChannel = field(default_factory=TaskChannel)
    finalized: bool = False
    pending_outcome: PendingOutcome | None = None
    supervisor: ProcessSupervisor | None = None
    heartbeat: HeartbeatTicker | None = None
    dropped_lines: int = 0

    def __post_init__(self) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at

    def to_summary(self) -> TaskSummary:
        return TaskSummary(
            id=self.id,
            prompt=self.prompt,
            cwd=self.cwd,
            state=self.state,
            created_at=isoformat(self.created_at),
            updated_at=isoformat(self.updated_at or self.created_at),
            exit_code=self.exit_code,
            error_message=self.error_message,
        )

    def to_detail(self) -> TaskDetail:
        return TaskDetail(
            **self.to_summary().model_dump(),
            logs=[entry.model_copy() for entry in self.logs],
        )
