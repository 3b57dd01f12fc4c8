"""Periodic keep-alive events for running tasks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger("codex-runner.tasks")


class HeartbeatTicker:
    """Invoke ``emit`` every ``interval_s`` seconds until stopped.

    A non-positive interval makes ``start`` a no-op. ``stop`` may be
    called any number of times; once it returns, ``emit`` is never
    invoked again.
    """

    def __init__(self, interval_s: float, emit: Callable[[], None]) -> None:
        self.interval_s = interval_s
        self._emit = emit
        self._task: asyncio.Task[None] | None = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        if self._stopped or self.interval_s <= 0 or self._task is not None:
            return False
        self._task = asyncio.get_running_loop().create_task(self._tick())
        return True

    def stop(self) -> None:
        self._stopped = True
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            if self._stopped:
                return
            try:
                self._emit()
            except Exception as exc:
                logger.warning("Heartbeat emit failed: %s", exc)
