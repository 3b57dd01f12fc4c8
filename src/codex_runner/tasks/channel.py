"""Broadcast channel with history replay for task stream events."""

from __future__ import annotations

import asyncio
from typing import Any

from codex_runner.tasks.models import StreamEvent

_CLOSED: Any = object()


class ChannelSubscription:
    """One consumer's view of a channel.

    Iterate with ``async for``; iteration ends once the channel is closed
    and every event published before the close has been delivered.
    """

    def __init__(self, channel: TaskChannel) -> None:
        self._channel = channel
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._detached = False

    def _deliver(self, item: Any) -> None:
        self._queue.put_nowait(item)

    def __aiter__(self) -> ChannelSubscription:
        return self

    async def __anext__(self) -> StreamEvent:
        if self._detached and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self.close()
            raise StopAsyncIteration
        return item

    async def get(self, timeout: float | None = None) -> StreamEvent | None:
        """Return the next event, or None once the channel has ended.

        Raises ``asyncio.TimeoutError`` when no event arrives in time.
        """
        try:
            if not self._queue.empty():
                return await self.__anext__()
            return await asyncio.wait_for(self.__anext__(), timeout=timeout)
        except StopAsyncIteration:
            return None

    def close(self) -> None:
        if self._detached:
            return
        self._detached = True
        self._channel._detach(self)
        self._queue.put_nowait(_CLOSED)

    async def __aenter__(self) -> ChannelSubscription:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


class TaskChannel:
    """Single-producer, multi-consumer event channel.

    Every published event except heartbeats is kept in an append-only
    history that is handed to each new subscriber before it sees live
    events. Once closed, the channel accepts no further events.
    """

    def __init__(self) -> None:
        self._history: list[StreamEvent] = []
        self._subscribers: list[ChannelSubscription] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def history(self) -> list[StreamEvent]:
        return list(self._history)

    def publish(self, event: StreamEvent) -> bool:
        if self._closed:
            return False
        if event.type != "heartbeat":
            self._history.append(event)
        for subscription in list(self._subscribers):
            subscription._deliver(event)
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for subscription in list(self._subscribers):
            subscription._deliver(_CLOSED)

    def subscribe(self) -> ChannelSubscription:
        subscription = ChannelSubscription(self)
        for event in self._history:
            subscription._deliver(event)
        if self._closed:
            subscription._deliver(_CLOSED)
        else:
            self._subscribers.append(subscription)
        return subscription

    def _detach(self, subscription: ChannelSubscription) -> None:
        try:
            self._subscribers.remove(subscription)
        except ValueError:
            pass
