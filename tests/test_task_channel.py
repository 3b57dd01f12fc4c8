"""Tests for TaskChannel broadcast and history replay."""

import asyncio
from datetime import datetime, timezone

import pytest

from codex_runner.tasks.channel import TaskChannel
from codex_runner.tasks.models import LogEntry, StreamEvent

TS = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _log(line: str) -> StreamEvent:
    return StreamEvent.log(LogEntry(line=line, stream="stdout", ts="2026-01-01T00:00:00.000+00:00"))


@pytest.mark.asyncio
async def test_late_subscriber_receives_history_then_live_events():
    channel = TaskChannel()
    channel.publish(StreamEvent.status("running", TS))
    channel.publish(_log("first"))

    subscription = channel.subscribe()
    assert channel.subscriber_count == 1

    channel.publish(_log("second"))
    channel.publish(StreamEvent.done(0, "completed"))
    channel.close()

    events = [event async for event in subscription]
    assert [event.type for event in events] == ["status", "log", "log", "done"]
    assert [event.data.get("line") for event in events if event.type == "log"] == ["first", "second"]
    assert channel.subscriber_count == 0


@pytest.mark.asyncio
async def test_fan_out_to_multiple_subscribers():
    channel = TaskChannel()
    first = channel.subscribe()
    second = channel.subscribe()

    channel.publish(_log("shared"))
    channel.close()

    assert [event.data["line"] async for event in first] == ["shared"]
    assert [event.data["line"] async for event in second] == ["shared"]


@pytest.mark.asyncio
async def test_closed_channel_ignores_publish_and_replays_to_new_subscribers():
    channel = TaskChannel()
    channel.publish(StreamEvent.done(-1, "error"))
    channel.close()
    channel.close()

    assert channel.publish(_log("late")) is False
    assert len(channel.history) == 1

    subscription = channel.subscribe()
    assert channel.subscriber_count == 0
    events = [event async for event in subscription]
    assert [event.type for event in events] == ["done"]


@pytest.mark.asyncio
async def test_subscription_close_detaches_and_ends_iteration():
    channel = TaskChannel()
    subscription = channel.subscribe()

    async def consume():
        return [event async for event in subscription]

    consumer = asyncio.ensure_future(consume())
    await asyncio.sleep(0)
    subscription.close()

    assert await asyncio.wait_for(consumer, timeout=1) == []
    assert channel.subscriber_count == 0


@pytest.mark.asyncio
async def test_get_times_out_without_events():
    channel = TaskChannel()
    async with channel.subscribe() as subscription:
        with pytest.raises(asyncio.TimeoutError):
            await subscription.get(timeout=0.05)
        channel.publish(_log("ready"))
        event = await subscription.get(timeout=0)
        assert event.data["line"] == "ready"
    assert channel.subscriber_count == 0


def test_status_event_omits_empty_error():
    assert "error" not in StreamEvent.status("running", TS).data
    assert StreamEvent.status("error", TS, "boom").data["error"] == "boom"
    assert StreamEvent.done(None, "canceled").data == {"exit_code": -1, "state": "canceled"}


@pytest.mark.asyncio
async def test_heartbeats_reach_live_subscribers_but_are_not_replayed():
    channel = TaskChannel()
    live = channel.subscribe()

    channel.publish(StreamEvent.status("running", TS))
    channel.publish(StreamEvent.heartbeat(TS))
    channel.publish(StreamEvent.heartbeat(TS))
    channel.publish(_log("after"))

    late = channel.subscribe()
    channel.close()

    assert [event.type for event in channel.history] == ["status", "log"]
    assert [event.type async for event in live] == ["status", "heartbeat", "heartbeat", "log"]
    assert [event.type async for event in late] == ["status", "log"]
