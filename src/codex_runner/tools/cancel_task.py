"""Task cancellation tool."""

from typing import Any

from fastmcp import FastMCP

from codex_runner.contracts import build_ok
from codex_runner.formatting import build_task_error, format_summary_lines
from codex_runner.tasks import TaskError, get_task_manager
from codex_runner.utils import CancelReason, TaskId


def register(mcp: FastMCP) -> None:
    """Register codex_cancel_task tool."""

    @mcp.tool()
    async def codex_cancel_task(task_id: TaskId, reason: CancelReason = None) -> dict[str, Any]:
        """Cancel a queued or running Codex task.

        Canceling a task that already finished returns its final state.
        """
        try:
            detail = get_task_manager().cancel(task_id, reason)
        except TaskError as exc:
            return build_task_error(exc, operation="codex_cancel_task")

        lines = ["Task canceled" if detail.state == "canceled" else "Task already finished"]
        lines.extend(format_summary_lines(detail))
        return build_ok(
            {
                **detail.model_dump(exclude={"logs"}),
                "log_count": len(detail.logs),
                "display": "\n".join(lines),
            }
        )
