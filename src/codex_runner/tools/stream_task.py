"""Stream window tool: collect task events for a bounded time."""

import asyncio
from typing import Any

from fastmcp import FastMCP

from codex_runner.contracts import build_ok
from codex_runner.formatting import build_task_error
from codex_runner.tasks import TaskError, get_task_manager
from codex_runner.utils import TaskId, WaitSeconds


async def collect_events(subscription, wait_seconds: float) -> tuple[list[dict[str, Any]], bool]:
    """Drain a subscription until ``done`` or until the window closes."""
    events: list[dict[str, Any]] = []
    loop = asyncio.get_running_loop()
    deadline = loop.time() + wait_seconds
    async with subscription:
        while True:
            remaining = max(0.0, deadline - loop.time())
            try:
                event = await subscription.get(timeout=remaining)
            except asyncio.TimeoutError:
                return events, False
            if event is None:
                return events, bool(events) and events[-1]["type"] == "done"
            events.append(event.model_dump())
            if event.type == "done":
                return events, True


def register(mcp: FastMCP) -> None:
    """Register codex_stream_task tool."""

    @mcp.tool()
    async def codex_stream_task(task_id: TaskId, wait_seconds: WaitSeconds = 5) -> dict[str, Any]:
        """Return the task's event stream: history first, then live events.

        Stops at the done event or after wait_seconds, whichever is first.
        """
        try:
            subscription = get_task_manager().subscribe(task_id)
        except TaskError as exc:
            return build_task_error(exc, operation="codex_stream_task")

        events, finished = await collect_events(subscription, wait_seconds)

        counts: dict[str, int] = {}
        for event in events:
            counts[event["type"]] = counts.get(event["type"], 0) + 1
        lines = [
            "Task events",
            f"- task_id: {task_id}",
            f"- finished: {finished}",
            "- counts: " + (", ".join(f"{name}={count}" for name, count in counts.items()) or "none"),
        ]
        if not finished:
            lines.extend(["", f'Next: codex_stream_task(task_id="{task_id}") to keep following'])

        return build_ok(
            {
                "task_id": task_id,
                "finished": finished,
                "events": events,
                "display": "\n".join(lines),
            }
        )
