"""Formatting and error rendering helpers for MCP tool outputs."""

from __future__ import annotations

from typing import Any

from codex_runner.contracts import build_error
from codex_runner.tasks.errors import TaskError
from codex_runner.tasks.models import LogEntry, TaskSummary

# =============================================================================
# Task summary / log formatting
# =============================================================================


def truncate_text(text: str, max_length: int = 120) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + f"... (truncated from {len(text)} chars)"


def format_summary_lines(summary: TaskSummary) -> list[str]:
    lines = [
        f"- task_id: {summary.id}",
        f"- state: {summary.state}",
        f"- cwd: {summary.cwd or 'n/a'}",
        f"- created_at: {summary.created_at}",
        f"- updated_at: {summary.updated_at}",
        f"- exit_code: {summary.exit_code if summary.exit_code is not None else 'n/a'}",
    ]
    if summary.error_message:
        lines.append(f"- error: {summary.error_message}")
    lines.append(f"- prompt: {truncate_text(summary.prompt)}")
    return lines


def format_log_line(entry: LogEntry) -> str:
    prefix = "!" if entry.stream == "stderr" else " "
    return f"{prefix} {entry.line}"


def paginate_logs(
    logs: list[LogEntry],
    skip_newest: int,
    limit: int,
    filter_text: str | None,
) -> tuple[list[LogEntry], dict[str, Any]]:
    entries = logs
    if filter_text:
        entries = [entry for entry in entries if filter_text in entry.line]

    total_lines = len(entries)
    start_idx = max(0, total_lines - limit - skip_newest)
    end_idx = max(0, total_lines - skip_newest)
    selected = entries[start_idx:end_idx]

    pagination = {
        "total_lines": total_lines,
        "line_range": f"{start_idx + 1}-{end_idx}" if selected else "0-0",
        "has_older": start_idx > 0,
        "has_newer": skip_newest > 0,
    }
    return selected, pagination


# =============================================================================
# Error formatting
# =============================================================================

_ERROR_ACTIONS = {
    "invalid_input": "provide a non-empty prompt",
    "not_found": "verify task_id with codex_list_tasks",
    "invalid_state": "check the task state with codex_get_task",
}


def build_task_error(exc: TaskError, *, operation: str) -> dict[str, Any]:
    """Build a unified error envelope for a caller-facing task error."""
    details: dict[str, Any] = {"operation": operation}
    if exc.task_id:
        details["task_id"] = exc.task_id
    action = _ERROR_ACTIONS.get(exc.code)
    if action:
        details["action"] = action
    return build_error(exc.code, exc.message, details)
