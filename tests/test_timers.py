from __future__ import annotations

import asyncio
import logging

import pytest

from uberpane.timers import TimerSet


@pytest.mark.asyncio
async def test_timer_fires_once() -> None:
    timers = TimerSet()
    fired: list[str] = []

    timers.arm("intro", 0.01, lambda: fired.append("intro"))
    assert timers.is_armed("intro")
    await asyncio.sleep(0.05)

    assert fired == ["intro"]
    assert not timers.is_armed("intro")
    await timers.close()


@pytest.mark.asyncio
async def test_rearm_replaces_pending_fire() -> None:
    timers = TimerSet()
    fired: list[str] = []

    timers.arm("visibility", 0.02, lambda: fired.append("first"))
    timers.arm("visibility", 0.03, lambda: fired.append("second"))
    await asyncio.sleep(0.08)

    assert fired == ["second"]
    await timers.close()


@pytest.mark.asyncio
async def test_disarm_cancels_and_tolerates_unknown_names() -> None:
    timers = TimerSet()
    fired: list[str] = []

    timers.arm("stale", 0.01, lambda: fired.append("stale"))
    timers.disarm("stale")
    timers.disarm("never-armed")
    await asyncio.sleep(0.03)

    assert fired == []
    await timers.close()


@pytest.mark.asyncio
async def test_async_callback_can_rearm_itself() -> None:
    timers = TimerSet()
    fired: list[int] = []

    async def tick() -> None:
        fired.append(len(fired))
        if len(fired) < 3:
            timers.arm("update", 0, tick)

    timers.arm("update", 0, tick)
    await asyncio.sleep(0.05)

    assert fired == [0, 1, 2]
    await timers.close()


@pytest.mark.asyncio
async def test_close_cancels_everything() -> None:
    timers = TimerSet()
    fired: list[str] = []

    timers.arm("a", 0.02, lambda: fired.append("a"))
    timers.arm("b", 0.02, lambda: fired.append("b"))
    await timers.close()
    timers.arm("c", 0, lambda: fired.append("c"))
    await asyncio.sleep(0.04)

    assert fired == []


@pytest.mark.asyncio
async def test_failing_callback_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    timers = TimerSet("pane")
    fired: list[str] = []

    def boom() -> None:
        raise RuntimeError("boom")

    with caplog.at_level(logging.ERROR, logger="uberpane.timers"):
        timers.arm("bad", 0, boom)
        timers.arm("good", 0.01, lambda: fired.append("good"))
        await asyncio.sleep(0.04)

    assert fired == ["good"]
    assert "timer bad callback failed" in caplog.text
    await timers.close()
