"""Task detail tool with a windowed log snapshot."""

from typing import Any

from fastmcp import FastMCP

from codex_runner.contracts import build_ok
from codex_runner.formatting import (
    build_task_error,
    format_log_line,
    format_summary_lines,
    paginate_logs,
)
from codex_runner.tasks import TaskError, get_task_manager
from codex_runner.utils import FilterText, OutputLimit, SkipNewestLines, TaskId


def register(mcp: FastMCP) -> None:
    """Register codex_get_task tool."""

    @mcp.tool()
    async def codex_get_task(
        task_id: TaskId,
        skip_newest: SkipNewestLines = 0,
        limit: OutputLimit = 64,
        filter: FilterText = None,
    ) -> dict[str, Any]:
        """Return task state and a page of its captured output."""
        try:
            detail = get_task_manager().get_detail(task_id)
        except TaskError as exc:
            return build_task_error(exc, operation="codex_get_task")

        selected, pagination = paginate_logs(detail.logs, skip_newest, limit, filter)

        lines = ["Task detail", *format_summary_lines(detail)]
        lines.extend(
            [
                "",
                (
                    "Output "
                    f"({pagination['total_lines']} lines, showing {pagination['line_range']}, "
                    f"has_newer={pagination['has_newer']}, has_older={pagination['has_older']}):"
                ),
            ]
        )
        lines.extend(format_log_line(entry) for entry in selected)
        if not selected:
            lines.append("(no output)")

        next_hints = []
        if pagination["has_newer"]:
            next_hints.append(f"newer: skip_newest={max(0, skip_newest - limit)}")
        if pagination["has_older"]:
            next_hints.append(f"older: skip_newest={skip_newest + limit}")
        if next_hints:
            lines.extend(["", "Next: " + " | ".join(next_hints)])

        summary = detail.model_dump(exclude={"logs"})
        return build_ok(
            {
                **summary,
                "logs": [entry.model_dump() for entry in selected],
                "pagination": pagination,
                "query": {"skip_newest": skip_newest, "limit": limit, "filter": filter},
                "display": "\n".join(lines),
            }
        )
