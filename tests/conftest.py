"""Shared test fixtures."""

import asyncio
import sys
from pathlib import Path

import pytest

import codex_runner.tasks.manager as manager_mod
from codex_runner.config import RunnerConfig
from codex_runner.tasks import TaskLifecycleManager

FAKE_AGENT = Path(__file__).parent / "fake_agent.py"


def make_config(tmp_path: Path, **overrides) -> RunnerConfig:
    values = {
        "executable": sys.executable,
        "args_template": (str(FAKE_AGENT), "{prompt}"),
        "default_workspace": str(tmp_path / "workspace"),
        "heartbeat_interval_s": 0.0,
    }
    values.update(overrides)
    return RunnerConfig(**values)


async def drain(subscription, timeout: float = 15.0) -> list:
    """Collect every event until the channel closes."""

    async def _collect():
        return [event async for event in subscription]

    return await asyncio.wait_for(_collect(), timeout=timeout)


async def wait_for_state(manager, task_id: str, states, timeout: float = 15.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        detail = manager.get_detail(task_id)
        if detail.state in states:
            return detail
        if loop.time() > deadline:
            raise AssertionError(f"task {task_id} stuck in {detail.state}")
        await asyncio.sleep(0.02)


def statuses(events) -> list[str]:
    return [event.data["state"] for event in events if event.type == "status"]


@pytest.fixture()
def runner_config(tmp_path) -> RunnerConfig:
    return make_config(tmp_path)


@pytest.fixture()
async def manager(runner_config):
    """Task manager installed as the process-wide instance."""
    instance = TaskLifecycleManager(runner_config)
    previous = manager_mod._task_manager
    manager_mod._task_manager = instance

    yield instance

    await instance.shutdown(timeout_s=5.0)
    manager_mod._task_manager = previous
