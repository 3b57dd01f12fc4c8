"""WebSocket push stream of task events."""

from codex_runner.stream.server import TaskStreamServer

__all__ = ["TaskStreamServer"]
