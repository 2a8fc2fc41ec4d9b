import asyncio

import pytest

from services.task_manager import TaskManager


@pytest.mark.asyncio
async def test_schedule_runs_callback_after_delay():
    manager = TaskManager(owner="test")
    calls = []

    task = manager.schedule("tick", 10, lambda: calls.append("sync"))
    assert manager.pending("tick")
    await task
    await asyncio.sleep(0)

    assert calls == ["sync"]
    assert not manager.pending("tick")
    assert manager.get("tick") is None


@pytest.mark.asyncio
async def test_schedule_awaits_async_callbacks():
    manager = TaskManager()
    calls = []

    async def callback():
        await asyncio.sleep(0)
        calls.append("async")

    await manager.schedule("tick", 0, callback)
    assert calls == ["async"]


@pytest.mark.asyncio
async def test_rescheduling_a_key_supersedes_the_pending_timer():
    manager = TaskManager()
    calls = []

    first = manager.schedule("phase", 50, lambda: calls.append("first"))
    second = manager.schedule("phase", 0, lambda: calls.append("second"))
    await second
    await asyncio.sleep(0.08)

    assert first.cancelled()
    assert calls == ["second"]


@pytest.mark.asyncio
async def test_cancel_all_stops_every_timer():
    manager = TaskManager()
    calls = []

    manager.schedule("a", 20, lambda: calls.append("a"))
    manager.schedule("b", 20, lambda: calls.append("b"))
    manager.cancel_all()
    await asyncio.sleep(0.05)

    assert calls == []
    assert not manager.pending("a")
    assert not manager.pending("b")


@pytest.mark.asyncio
async def test_callback_may_cancel_its_own_key():
    manager = TaskManager()
    calls = []

    def callback():
        manager.cancel_task("self")
        calls.append("done")

    task = manager.schedule("self", 0, callback)
    await task

    assert not task.cancelled()
    assert calls == ["done"]


@pytest.mark.asyncio
async def test_failed_task_is_cleaned_up():
    manager = TaskManager()

    async def boom():
        raise RuntimeError("boom")

    task = manager.spawn("job", boom())
    with pytest.raises(RuntimeError):
        await task
    await asyncio.sleep(0)

    assert manager.get("job") is None
