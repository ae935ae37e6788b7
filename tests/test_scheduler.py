import asyncio

import pytest

from bloom.managers.scheduler_manager import Scheduler
from tests.fakes import eventually


@pytest.mark.asyncio
async def test_arm_fires_once():
    scheduler = Scheduler()
    fired = []

    scheduler.arm("tick", 0.01, lambda: fired.append("tick"))
    assert scheduler.is_armed("tick")

    await eventually(lambda: fired == ["tick"])
    assert not scheduler.is_armed("tick")


@pytest.mark.asyncio
async def test_rearming_a_key_replaces_the_previous_timer():
    scheduler = Scheduler()
    fired = []

    scheduler.arm("rotation", 0.02, lambda: fired.append("first"))
    scheduler.arm("rotation", 0.03, lambda: fired.append("second"))
    await asyncio.sleep(0.1)

    assert fired == ["second"]
    assert scheduler.armed_keys() == []


@pytest.mark.asyncio
async def test_cancel_prevents_firing():
    scheduler = Scheduler()
    fired = []

    scheduler.arm("reconnect:bot1", 0.01, lambda: fired.append(1))
    assert scheduler.cancel("reconnect:bot1") is True
    assert scheduler.cancel("reconnect:bot1") is False
    await asyncio.sleep(0.05)

    assert fired == []


@pytest.mark.asyncio
async def test_cancel_all():
    scheduler = Scheduler()
    fired = []

    scheduler.arm("a", 0.01, lambda: fired.append("a"))
    scheduler.arm("b", 0.01, lambda: fired.append("b"))
    scheduler.cancel_all()
    await asyncio.sleep(0.05)

    assert fired == []
    assert scheduler.armed_keys() == []


@pytest.mark.asyncio
async def test_repeat_timer_keeps_firing_until_cancelled():
    scheduler = Scheduler()
    fired = []

    scheduler.arm("rotation", 0.01, lambda: fired.append(1), repeat=True)
    await eventually(lambda: len(fired) >= 3)
    assert scheduler.is_armed("rotation")

    scheduler.cancel("rotation")
    count = len(fired)
    await asyncio.sleep(0.05)
    assert len(fired) == count


@pytest.mark.asyncio
async def test_coroutine_callback_runs_and_errors_are_contained():
    scheduler = Scheduler()
    done = []

    async def failing():
        raise RuntimeError("boom")

    async def working():
        done.append("ok")

    scheduler.arm("bad", 0.0, failing)
    scheduler.arm("good", 0.01, working)
    await eventually(lambda: done == ["ok"])
    await scheduler.wait_idle()


@pytest.mark.asyncio
async def test_sync_callback_error_does_not_break_scheduler():
    scheduler = Scheduler()
    fired = []

    def failing():
        raise RuntimeError("boom")

    scheduler.arm("bad", 0.0, failing)
    scheduler.arm("good", 0.01, lambda: fired.append(1))
    await eventually(lambda: fired == [1])


@pytest.mark.asyncio
async def test_negative_delay_is_rejected():
    scheduler = Scheduler()

    with pytest.raises(ValueError):
        scheduler.arm("bad", -1, lambda: None)


@pytest.mark.asyncio
async def test_get_delay():
    scheduler = Scheduler()

    assert scheduler.get_delay("rotation") is None

    scheduler.arm("rotation", 3600, lambda: None)

    assert scheduler.get_delay("rotation") == 3600
    scheduler.cancel_all()
