"""Tests for the WebSocket task stream server."""

import asyncio
import json

import pytest
import websockets

from codex_runner.stream import TaskStreamServer
from conftest import wait_for_state


@pytest.fixture()
async def stream_url(manager):
    server = TaskStreamServer(manager, "127.0.0.1", 0)
    await server.start()

    yield f"ws://127.0.0.1:{server.bound_port}"

    await server.stop()


async def _recv(websocket, timeout: float = 15.0) -> dict:
    return json.loads(await asyncio.wait_for(websocket.recv(), timeout=timeout))


async def _recv_until_done(websocket, request_id: str) -> list:
    events = []
    while True:
        frame = await _recv(websocket)
        assert frame["type"] == "event"
        assert frame["request_id"] == request_id
        events.append(frame["event"])
        if frame["event"]["type"] == "done":
            return events


@pytest.mark.asyncio
async def test_subscribe_streams_events_until_done(manager, stream_url):
    summary = manager.create("lines 2")

    async with websockets.connect(stream_url) as websocket:
        await websocket.send(json.dumps({"type": "subscribe", "task_id": summary.id, "request_id": "r1"}))
        events = await _recv_until_done(websocket, "r1")

    assert events[0]["type"] == "status"
    assert [event["data"]["line"] for event in events if event["type"] == "log"] == ["line 0", "line 1"]
    assert events[-1]["data"] == {"exit_code": 0, "state": "completed"}


@pytest.mark.asyncio
async def test_subscribe_to_finished_task_replays_history(manager, stream_url):
    summary = manager.create("echo replay")
    await wait_for_state(manager, summary.id, {"completed"})

    async with websockets.connect(stream_url) as websocket:
        await websocket.send(json.dumps({"type": "subscribe", "task_id": summary.id, "request_id": "a"}))
        first = await _recv_until_done(websocket, "a")
        await websocket.send(json.dumps({"type": "subscribe", "task_id": summary.id, "request_id": "b"}))
        second = await _recv_until_done(websocket, "b")

    assert first == second
    assert [event["type"] for event in first] == ["status", "log", "done"]


@pytest.mark.asyncio
async def test_two_clients_share_live_events(manager, stream_url):
    summary = manager.create("sleep 0.3")

    async with websockets.connect(stream_url) as one, websockets.connect(stream_url) as two:
        await one.send(json.dumps({"type": "subscribe", "task_id": summary.id, "request_id": "one"}))
        await wait_for_state(manager, summary.id, {"running"})
        await two.send(json.dumps({"type": "subscribe", "task_id": summary.id, "request_id": "two"}))
        first, second = await asyncio.gather(
            _recv_until_done(one, "one"),
            _recv_until_done(two, "two"),
        )

    assert first[-1] == second[-1]
    assert first[-1]["data"]["state"] == "completed"


@pytest.mark.asyncio
async def test_subscribe_unknown_task_returns_error_frame(stream_url):
    async with websockets.connect(stream_url) as websocket:
        await websocket.send(json.dumps({"type": "subscribe", "task_id": "missing", "request_id": "x"}))
        frame = await _recv(websocket)

    assert frame == {
        "type": "error",
        "request_id": "x",
        "task_id": "missing",
        "code": "not_found",
        "message": "Task missing not found",
    }


@pytest.mark.asyncio
async def test_subscribe_without_task_id_is_invalid(stream_url):
    async with websockets.connect(stream_url) as websocket:
        await websocket.send(json.dumps({"type": "subscribe", "request_id": "x"}))
        frame = await _recv(websocket)

    assert frame["type"] == "error"
    assert frame["code"] == "invalid_input"


@pytest.mark.asyncio
async def test_invalid_messages_return_errors(stream_url):
    async with websockets.connect(stream_url) as websocket:
        await websocket.send("not json")
        invalid_json = await _recv(websocket)
        await websocket.send(json.dumps(["a", "list"]))
        not_object = await _recv(websocket)
        await websocket.send(json.dumps({"type": "launch", "request_id": "q"}))
        unknown_type = await _recv(websocket)

    assert invalid_json["code"] == "invalid_input"
    assert invalid_json["message"] == "Invalid JSON format"
    assert not_object["code"] == "invalid_input"
    assert unknown_type["code"] == "invalid_input"
    assert unknown_type["request_id"] == "q"
    assert "launch" in unknown_type["message"]


@pytest.mark.asyncio
async def test_ping_pong(stream_url):
    async with websockets.connect(stream_url) as websocket:
        await websocket.send(json.dumps({"type": "ping", "request_id": "p1"}))
        frame = await _recv(websocket)

    assert frame == {"type": "pong", "request_id": "p1"}


@pytest.mark.asyncio
async def test_disconnect_releases_subscription(manager, stream_url):
    summary = manager.create("sleep 30")
    await wait_for_state(manager, summary.id, {"running"})

    async with websockets.connect(stream_url) as websocket:
        await websocket.send(json.dumps({"type": "subscribe", "task_id": summary.id, "request_id": "r"}))
        frame = await _recv(websocket)
        assert frame["event"]["type"] == "status"
        assert manager._get(summary.id).channel.subscriber_count == 1

    loop = asyncio.get_running_loop()
    deadline = loop.time() + 5.0
    while manager._get(summary.id).channel.subscriber_count and loop.time() < deadline:
        await asyncio.sleep(0.02)
    assert manager._get(summary.id).channel.subscriber_count == 0
