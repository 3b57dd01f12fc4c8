"""
Task Stream Server - WebSocket push stream of task events.

A client subscribes to one task per request:

    {"type": "subscribe", "task_id": "...", "request_id": "..."}

and receives one frame per event until the task's ``done`` event:

    {"type": "event", "request_id": "...", "task_id": "...",
     "event": {"type": "status" | "log" | "heartbeat" | "done", "data": {...}}}

Several subscriptions may run concurrently on one connection; each is
served by its own asyncio task and ends when the connection closes.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import websockets

from codex_runner.tasks import TaskError, TaskLifecycleManager

logger = logging.getLogger("codex-runner.stream")


class TaskStreamServer:
    """WebSocket server delivering task event streams to subscribers."""

    def __init__(
        self,
        manager: TaskLifecycleManager,
        host: str = "127.0.0.1",
        port: int = 9101,
        ping_interval: Optional[float] = 20.0,
        ping_timeout: Optional[float] = 20.0,
    ) -> None:
        self.manager = manager
        self.host = host
        self.port = port
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self.active_connections: set[Any] = set()
        self.server: Any | None = None

        self._handlers = {
            "subscribe": self._handle_subscribe,
            "ping": self._handle_ping,
        }

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually bound (differs from ``port`` when it was 0)."""
        if self.server is None or not self.server.sockets:
            return None
        return self.server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        self.server = await websockets.serve(
            self.handle_client,
            self.host,
            self.port,
            ping_interval=self.ping_interval,
            ping_timeout=self.ping_timeout,
        )
        logger.info("Task stream server listening on ws://%s:%s", self.host, self.bound_port)

    async def stop(self) -> None:
        server = self.server
        self.server = None
        if server is None:
            return
        server.close()
        await server.wait_closed()
        logger.info("Task stream server stopped")

    async def handle_client(self, websocket: Any) -> None:
        """Serve one connection; each message is handled in its own task."""
        self.active_connections.add(websocket)
        pending_tasks: set[asyncio.Task[None]] = set()

        try:
            async for message in websocket:
                task = asyncio.ensure_future(self._process_message(websocket, message))
                pending_tasks.add(task)
                task.add_done_callback(pending_tasks.discard)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            for task in pending_tasks:
                task.cancel()
            if pending_tasks:
                await asyncio.gather(*pending_tasks, return_exceptions=True)
            self.active_connections.discard(websocket)

    async def _send(self, websocket: Any, payload: Dict[str, Any]) -> bool:
        try:
            await websocket.send(json.dumps(payload))
            return True
        except websockets.exceptions.ConnectionClosed:
            logger.debug("Cannot send %s frame, connection closed", payload.get("type"))
            return False

    async def _send_error(
        self,
        websocket: Any,
        code: str,
        message: str,
        request_id: Optional[str] = None,
        task_id: Optional[str] = None,
    ) -> bool:
        return await self._send(
            websocket,
            {
                "type": "error",
                "request_id": request_id,
                "task_id": task_id,
                "code": code,
                "message": message,
            },
        )

    async def _process_message(self, websocket: Any, message: Any) -> None:
        try:
            data = json.loads(message)
        except (json.JSONDecodeError, TypeError) as exc:
            logger.warning("Invalid JSON from stream client: %s", exc)
            await self._send_error(websocket, "invalid_input", "Invalid JSON format")
            return

        if not isinstance(data, dict):
            await self._send_error(websocket, "invalid_input", "Message must be a JSON object")
            return

        msg_type = data.get("type")
        request_id = data.get("request_id")
        handler = self._handlers.get(msg_type)
        if handler is None:
            await self._send_error(
                websocket, "invalid_input", f"Unsupported message type: {msg_type}", request_id
            )
            return

        try:
            await handler(websocket, data)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Stream message handling error: %s", exc)
            await self._send_error(websocket, "internal_error", "Internal server error", request_id)

    async def _handle_ping(self, websocket: Any, data: Dict[str, Any]) -> None:
        await self._send(websocket, {"type": "pong", "request_id": data.get("request_id")})

    async def _handle_subscribe(self, websocket: Any, data: Dict[str, Any]) -> None:
        request_id = data.get("request_id")
        task_id = data.get("task_id")
        if not isinstance(task_id, str) or not task_id.strip():
            await self._send_error(websocket, "invalid_input", "task_id required", request_id)
            return

        try:
            subscription = self.manager.subscribe(task_id.strip())
        except TaskError as exc:
            await self._send_error(websocket, exc.code, exc.message, request_id, task_id)
            return

        logger.debug("Stream subscriber attached to task %s", task_id)
        async with subscription:
            async for event in subscription:
                frame = {
                    "type": "event",
                    "request_id": request_id,
                    "task_id": task_id,
                    "event": event.model_dump(),
                }
                if not await self._send(websocket, frame):
                    return
        logger.debug("Stream subscriber for task %s finished", task_id)
