"""Codex Runner Server - Codex CLI tasks exposed over MCP and a WebSocket stream."""

import argparse
import asyncio
import logging
from dataclasses import replace
from typing import Any

from fastmcp import FastMCP

from codex_runner import __version__
from codex_runner.config import RunnerConfig, get_runner_config
from codex_runner.stream import TaskStreamServer
from codex_runner.tasks import get_task_manager
from codex_runner.tools import (
    cancel_task,
    create_task,
    get_task,
    list_tasks,
    stream_task,
)

mcp = FastMCP(
    "Codex Runner",
    instructions=(
        "Runs prompts through the Codex CLI as background tasks. "
        "Create a task, follow its output with codex_stream_task or "
        "codex_get_task, and cancel it with codex_cancel_task. "
        "Live events are also pushed over a WebSocket stream server."
    ),
)

logger = logging.getLogger("codex-runner.server")

# Register task tools
create_task.register(mcp)
list_tasks.register(mcp)
get_task.register(mcp)
stream_task.register(mcp)
cancel_task.register(mcp)


async def serve(config: RunnerConfig, run_kwargs: dict[str, Any]) -> None:
    """Run the MCP server and stream server on one event loop."""
    manager = get_task_manager()
    stream_server = None
    if config.stream_enabled:
        stream_server = TaskStreamServer(manager, config.stream_host, config.stream_port)
        await stream_server.start()

    try:
        await mcp.run_async(**run_kwargs)
    finally:
        if stream_server is not None:
            await stream_server.stop()
        canceled = await manager.shutdown()
        if canceled:
            logger.info("Stopped %d running task(s)", canceled)


def main():
    """Entry point for the Codex runner server."""
    parser = argparse.ArgumentParser(
        prog="codex-runner",
        description="Codex Runner - Codex CLI tasks exposed over MCP",
    )
    parser.add_argument("--version", "-v", action="version", version=f"codex-runner {__version__}")
    parser.add_argument(
        "--transport",
        choices=["stdio", "http", "sse"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind when using http/sse transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind when using http/sse transport (default: 8000)",
    )
    parser.add_argument("--stream-host", default=None, help="WebSocket stream host (default: from env)")
    parser.add_argument("--stream-port", type=int, default=None, help="WebSocket stream port (default: from env)")
    parser.add_argument("--no-stream", action="store_true", help="Do not start the WebSocket stream server")
    args = parser.parse_args()

    config = get_runner_config()
    overrides: dict[str, Any] = {}
    if args.stream_host is not None:
        overrides["stream_host"] = args.stream_host
    if args.stream_port is not None:
        overrides["stream_port"] = args.stream_port
    if args.no_stream:
        overrides["stream_enabled"] = False
    if overrides:
        config = replace(config, **overrides)

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    run_kwargs: dict = {"transport": args.transport, "show_banner": False}
    if args.transport in ("http", "sse"):
        run_kwargs["host"] = args.host
        run_kwargs["port"] = args.port

    # Suppress noisy uvicorn shutdown messages (e.g. "Cancel N running task(s)")
    logging.getLogger("uvicorn.error").setLevel(logging.CRITICAL)

    try:
        asyncio.run(serve(config, run_kwargs))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
