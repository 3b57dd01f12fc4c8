"""
Task Lifecycle Manager - registry, supervision and streaming for Codex tasks.

Owns every TaskRecord for the lifetime of the process. Each task is driven
by one supervision coroutine on the running event loop; callers never wait
on a subprocess. Outcomes are observed through state transitions and
stream events.

Finalization happens exactly once per task. The process exit, a runtime
error, a spawn failure and an explicit cancel all race for it, and the
first to reach ``_finalize`` commits the outcome.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import uuid
from functools import partial
from threading import Lock
from typing import Optional

from codex_runner.config import RunnerConfig, get_runner_config
from codex_runner.tasks.channel import ChannelSubscription, TaskChannel
from codex_runner.tasks.errors import (
    InvalidInputError,
    InvalidStateError,
    SpawnError,
    TaskNotFoundError,
)
from codex_runner.tasks.heartbeat import HeartbeatTicker
from codex_runner.tasks.models import (
    ACTIVE_STATES,
    LogEntry,
    StreamEvent,
    TaskDetail,
    TaskSummary,
    isoformat,
    utc_now,
)
from codex_runner.tasks.record import PendingOutcome, TaskRecord
from codex_runner.tasks.supervisor import ProcessSupervisor, build_command

logger = logging.getLogger("codex-runner.tasks")

DEFAULT_CANCEL_REASON = "Task canceled by user"
SHUTDOWN_REASON = "Runner shutting down"
DEFAULT_FAILURE_MESSAGE = "Codex execution failed"


class TaskLifecycleManager:
    """Create, supervise, stream and cancel Codex CLI tasks."""

    def __init__(self, config: Optional[RunnerConfig] = None) -> None:
        self.config = config or get_runner_config()
        self._tasks: dict[str, TaskRecord] = {}
        self._lock = Lock()
        self._runners: set[asyncio.Task[None]] = set()

    # ── Public operations ──────────────────────────────────────

    def create(self, prompt: str, cwd: Optional[str] = None) -> TaskSummary:
        """Register a task and schedule its subprocess.

        Must be called from the event loop thread. Returns as soon as the
        task is queued.
        """
        if prompt is None or not prompt.strip():
            raise InvalidInputError("prompt must not be empty")
        loop = asyncio.get_running_loop()
        working_dir = self._resolve_cwd(cwd)

        with self._lock:
            task_id = uuid.uuid4().hex
            while task_id in self._tasks:
                task_id = uuid.uuid4().hex
            record = TaskRecord(id=task_id, prompt=prompt, cwd=working_dir)
            self._tasks[task_id] = record

        logger.info("Task %s queued (cwd=%s)", task_id, working_dir)
        self._push_status(record, "queued")

        runner = loop.create_task(self._run(record), name=f"codex-task-{task_id}")
        self._runners.add(runner)
        runner.add_done_callback(self._runners.discard)
        return record.to_summary()

    def list_tasks(self) -> list[TaskSummary]:
        """Summaries of all tasks, newest first."""
        with self._lock:
            records = list(self._tasks.values())
        records.sort(key=lambda record: record.created_at, reverse=True)
        return [record.to_summary() for record in records]

    def get_detail(self, task_id: str) -> TaskDetail:
        return self._get(task_id).to_detail()

    def stream(self, task_id: str) -> TaskChannel:
        """Return a channel carrying the task's events.

        An unfinished task with live subscribers shares its current
        channel. Otherwise a replay channel is built from stored history
        and becomes the task's current channel. Subscribe before yielding
        to the loop, or use ``subscribe``.
        """
        record = self._get(task_id)
        if not record.finalized and record.channel.subscriber_count > 0:
            return record.channel
        return self._replay(record)

    def subscribe(self, task_id: str) -> ChannelSubscription:
        return self.stream(task_id).subscribe()

    def cancel(self, task_id: str, reason: Optional[str] = None) -> TaskDetail:
        record = self._get(task_id)
        if record.finalized:
            return record.to_detail()
        if record.state not in ACTIVE_STATES:
            raise InvalidStateError(f"Task {task_id} is not active", task_id=task_id)

        logger.info("Canceling task %s", task_id)
        record.pending_outcome = PendingOutcome("canceled", reason or DEFAULT_CANCEL_REASON)
        self._stop_heartbeat(record)
        self._signal(record)
        if not record.finalized:
            self._finalize(record, None)
        return record.to_detail()

    async def shutdown(self, timeout_s: float = 5.0) -> int:
        """Cancel every active task and reap their processes.

        Returns the number of tasks canceled.
        """
        with self._lock:
            active = [record for record in self._tasks.values() if not record.finalized]
        for record in active:
            self.cancel(record.id, SHUTDOWN_REASON)

        runners = list(self._runners)
        if runners:
            _, pending = await asyncio.wait(runners, timeout=timeout_s)
            for runner in pending:
                runner.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        if active:
            logger.info("Canceled %d active task(s) on shutdown", len(active))
        return len(active)

    # ── Supervision ────────────────────────────────────────────

    async def _run(self, record: TaskRecord) -> None:
        if record.finalized:
            return

        try:
            cwd = record.cwd or os.getcwd()
            supervisor = ProcessSupervisor(
                self.config.executable,
                build_command(self.config.args_template, record.prompt, cwd),
                cwd,
                on_line=partial(self._append_log, record),
                on_exit=partial(self._on_exit, record),
                on_error=partial(self._on_error, record),
            )
            await supervisor.start()
        except SpawnError as exc:
            logger.error("Failed to spawn Codex process for task %s: %s", record.id, exc)
            self._finalize(record, None, error=str(exc))
            return
        except Exception as exc:
            logger.exception("Unexpected error starting task %s", record.id)
            self._finalize(record, None, error=str(exc) or DEFAULT_FAILURE_MESSAGE)
            return

        record.supervisor = supervisor
        if record.finalized:
            # Canceled while the process was starting.
            self._signal(record)
        else:
            logger.info("Task %s running (pid=%s)", record.id, supervisor.pid)
            self._push_status(record, "running")
            self._start_heartbeat(record)
        await supervisor.run()

        if record.dropped_lines:
            logger.debug(
                "Task %s: %d output line(s) arrived after finalization and were not logged",
                record.id,
                record.dropped_lines,
            )

    def _on_exit(self, record: TaskRecord, returncode: int) -> None:
        if returncode == 0:
            self._finalize(record, 0)
        elif returncode < 0:
            self._finalize(
                record,
                None,
                error=f"Codex terminated by signal {_signal_name(-returncode)}",
            )
        else:
            self._finalize(record, returncode, error=f"Codex exited with code {returncode}")

    def _on_error(self, record: TaskRecord, exc: BaseException) -> None:
        logger.error("Codex process error for task %s: %s", record.id, exc)
        self._finalize(record, None, error=str(exc) or DEFAULT_FAILURE_MESSAGE)

    def _append_log(self, record: TaskRecord, stream: str, line: str) -> None:
        if record.finalized:
            record.dropped_lines += 1
            return
        entry = LogEntry(line=line, stream=stream, ts=isoformat(utc_now()))
        record.logs.append(entry)
        record.channel.publish(StreamEvent.log(entry))

    def _finalize(
        self,
        record: TaskRecord,
        exit_code: Optional[int],
        error: Optional[str] = None,
    ) -> bool:
        if record.finalized:
            return False
        record.finalized = True
        record.exit_code = exit_code
        self._stop_heartbeat(record)

        outcome = record.pending_outcome
        if outcome is not None:
            state = outcome.state
            message = outcome.message
        else:
            state = "completed" if exit_code == 0 and error is None else "error"
            message = error or (DEFAULT_FAILURE_MESSAGE if state == "error" else None)

        self._push_status(record, state, message)
        record.pending_outcome = None
        record.channel.publish(StreamEvent.done(exit_code, state))
        record.channel.close()
        logger.info("Task %s finalized: %s (exit_code=%s)", record.id, state, exit_code)
        return True

    # ── Helpers ────────────────────────────────────────────────

    def _get(self, task_id: str) -> TaskRecord:
        with self._lock:
            record = self._tasks.get(task_id)
        if record is None:
            raise TaskNotFoundError(task_id)
        return record

    def _resolve_cwd(self, cwd: Optional[str]) -> str:
        if cwd:
            return os.path.abspath(os.path.expanduser(cwd))
        workspace = os.path.abspath(os.path.expanduser(self.config.default_workspace))
        try:
            os.makedirs(workspace, exist_ok=True)
        except OSError as exc:
            logger.warning("Cannot create default workspace %s: %s", workspace, exc)
        return workspace

    def _push_status(self, record: TaskRecord, state: str, error: Optional[str] = None) -> None:
        record.state = state
        record.error_message = error
        record.updated_at = utc_now()
        record.channel.publish(StreamEvent.status(state, record.updated_at, error))

    def _replay(self, record: TaskRecord) -> TaskChannel:
        channel = TaskChannel()
        channel.publish(
            StreamEvent.status(record.state, record.updated_at or record.created_at, record.error_message)
        )
        for entry in record.logs:
            channel.publish(StreamEvent.log(entry))
        if record.finalized:
            channel.publish(StreamEvent.done(record.exit_code, record.state))
            channel.close()
        record.channel = channel
        return channel

    def _signal(self, record: TaskRecord) -> None:
        supervisor = record.supervisor
        if supervisor is None:
            return
        try:
            if supervisor.terminate():
                logger.debug("Sent SIGTERM to task %s (pid=%s)", record.id, supervisor.pid)
        except OSError as exc:
            logger.warning("Failed to terminate task %s: %s", record.id, exc)

    def _start_heartbeat(self, record: TaskRecord) -> None:
        interval = self.config.heartbeat_interval_s
        if interval <= 0:
            return
        self._stop_heartbeat(record)
        ticker = HeartbeatTicker(
            interval,
            lambda: record.channel.publish(StreamEvent.heartbeat(utc_now())),
        )
        ticker.start()
        record.heartbeat = ticker

    @staticmethod
    def _stop_heartbeat(record: TaskRecord) -> None:
        if record.heartbeat is not None:
            record.heartbeat.stop()
            record.heartbeat = None


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


_task_manager: Optional[TaskLifecycleManager] = None


def get_task_manager() -> TaskLifecycleManager:
    global _task_manager
    if _task_manager is None:
        _task_manager = TaskLifecycleManager()
    return _task_manager
