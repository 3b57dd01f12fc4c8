"""Task listing tool backed by the task lifecycle manager."""

from typing import Any

from fastmcp import FastMCP

from codex_runner.contracts import build_ok
from codex_runner.tasks import get_task_manager
from codex_runner.utils import SkipNewestTasks, TaskListLimit


def register(mcp: FastMCP) -> None:
    """Register codex_list_tasks tool."""

    @mcp.tool()
    async def codex_list_tasks(
        skip_newest: SkipNewestTasks = 0,
        limit: TaskListLimit = 32,
    ) -> dict[str, Any]:
        """List tracked Codex tasks, newest first, with pagination."""
        summaries = get_task_manager().list_tasks()
        total_count = len(summaries)
        page = summaries[skip_newest : skip_newest + limit]
        has_more = skip_newest + len(page) < total_count

        if total_count == 0:
            return build_ok(
                {
                    "total_count": 0,
                    "displayed_count": 0,
                    "skip_newest": skip_newest,
                    "limit": limit,
                    "has_more": False,
                    "tasks": [],
                    "display": "No tracked tasks found.",
                }
            )

        lines = [
            "Tracked tasks",
            f"- total_count: {total_count}",
            f"- displayed_count: {len(page)}",
            f"- skip_newest: {skip_newest}",
            f"- limit: {limit}",
            f"- has_more: {has_more}",
            "",
        ]
        for summary in page:
            lines.append(
                f"- task_id={summary.id} state={summary.state} "
                f"exit_code={summary.exit_code if summary.exit_code is not None else 'n/a'} "
                f"created_at={summary.created_at}"
            )
            lines.append(f"  cwd={summary.cwd or 'n/a'}")

        if has_more:
            lines.extend(["", f"Next: codex_list_tasks(skip_newest={skip_newest + len(page)}, limit={limit})"])

        return build_ok(
            {
                "total_count": total_count,
                "displayed_count": len(page),
                "skip_newest": skip_newest,
                "limit": limit,
                "has_more": has_more,
                "tasks": [summary.model_dump() for summary in page],
                "display": "\n".join(lines),
            }
        )
