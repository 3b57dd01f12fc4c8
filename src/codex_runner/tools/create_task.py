"""Task creation tool backed by the task lifecycle manager."""

from typing import Any

from fastmcp import FastMCP

from codex_runner.contracts import build_ok
from codex_runner.formatting import build_task_error, format_summary_lines
from codex_runner.tasks import TaskError, get_task_manager
from codex_runner.utils import Prompt, WorkingDirectory


def register(mcp: FastMCP) -> None:
    """Register codex_create_task tool."""

    @mcp.tool()
    async def codex_create_task(prompt: Prompt, cwd: WorkingDirectory = None) -> dict[str, Any]:
        """Start a Codex CLI run for the prompt and return immediately.

        Use codex_stream_task or codex_get_task to follow progress.
        """
        try:
            summary = get_task_manager().create(prompt, cwd)
        except TaskError as exc:
            return build_task_error(exc, operation="codex_create_task")

        lines = ["Task created", *format_summary_lines(summary)]
        lines.extend(["", f'Next: codex_stream_task(task_id="{summary.id}")'])
        return build_ok(
            {
                **summary.model_dump(),
                "display": "\n".join(lines),
            }
        )
