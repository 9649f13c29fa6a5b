import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from pitboss.room.clock import PhaseClock


@pytest.mark.asyncio
async def test_manual_deadline_waits_for_fire():
    clock = PhaseClock(manual=True)
    callback = AsyncMock()

    clock.arm(0, callback, "betting")
    await asyncio.sleep(0.01)
    callback.assert_not_called()
    assert clock.pending == "betting"
    assert clock.remaining() is None

    assert await clock.fire()
    callback.assert_awaited_once()
    assert clock.pending is None
    assert not await clock.fire()


@pytest.mark.asyncio
async def test_automatic_deadline_fires():
    clock = PhaseClock()
    fired = asyncio.Event()

    clock.arm(0.01, fired.set, "round")
    assert clock.remaining() is not None

    await asyncio.wait_for(fired.wait(), 1)
    assert clock.pending is None


@pytest.mark.asyncio
async def test_coroutine_callback_runs_as_background_task():
    clock = PhaseClock()
    callback = AsyncMock()

    clock.arm(0, callback, "insurance")
    await asyncio.sleep(0.01)
    await clock.idle()

    callback.assert_awaited_once()


@pytest.mark.asyncio
async def test_arming_replaces_previous_deadline():
    clock = PhaseClock()
    first = MagicMock()
    second = MagicMock()

    clock.arm(0.01, first, "betting")
    clock.arm(0.01, second, "insurance")
    await asyncio.sleep(0.05)

    first.assert_not_called()
    second.assert_called_once()


@pytest.mark.asyncio
async def test_cancel():
    clock = PhaseClock()
    callback = MagicMock()

    clock.arm(0.01, callback, "action")
    clock.cancel()
    await asyncio.sleep(0.05)

    callback.assert_not_called()
    assert clock.pending is None


@pytest.mark.asyncio
async def test_switching_to_automatic_rearms_pending_deadline():
    clock = PhaseClock(manual=True)
    fired = asyncio.Event()

    clock.arm(0, fired.set, "round")
    clock.set_manual(False)

    await asyncio.wait_for(fired.wait(), 1)
    assert not clock.manual


@pytest.mark.asyncio
async def test_switching_to_manual_holds_deadline():
    clock = PhaseClock()
    callback = MagicMock()

    clock.arm(0.01, callback, "action")
    clock.set_manual(True)
    await asyncio.sleep(0.05)

    callback.assert_not_called()
    assert clock.pending == "action"


@pytest.mark.asyncio
async def test_failed_background_task_is_logged(caplog):
    clock = PhaseClock()

    async def broken():
        raise RuntimeError("dealer fell over")

    clock.spawn(broken(), name="dealer-turn")
    await clock.idle()

    assert "dealer-turn" in caplog.text
    assert "dealer fell over" in caplog.text


@pytest.mark.asyncio
async def test_idle_waits_for_tasks_spawned_meanwhile():
    clock = PhaseClock()
    done = []

    async def second():
        done.append("second")

    async def first():
        await asyncio.sleep(0)
        clock.spawn(second())
        done.append("first")

    clock.spawn(first())
    await clock.idle()

    assert done == ["first", "second"]


@pytest.mark.asyncio
async def test_close_cancels_everything():
    clock = PhaseClock()
    callback = MagicMock()
    started = asyncio.Event()

    async def forever():
        started.set()
        await asyncio.sleep(60)

    task = clock.spawn(forever())
    clock.arm(0.01, callback, "round")
    await started.wait()
    await clock.close()

    assert task.cancelled()
    assert clock.pending is None
    await asyncio.sleep(0.05)
    callback.assert_not_called()
