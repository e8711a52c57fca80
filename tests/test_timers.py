import asyncio

import pytest

from utils.timers import AsyncioScheduler, PolledScheduler


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_polled_callback_fires_only_when_due():
    clock = FakeClock()
    scheduler = PolledScheduler(clock)
    fired = []
    scheduler.call_later(1.0, lambda: fired.append(clock.now))

    assert scheduler.poll() == 0
    clock.now = 0.5
    assert scheduler.poll() == 0
    clock.now = 1.0
    assert scheduler.poll() == 1
    assert fired == [1.0]
    assert scheduler.pending == 0


def test_cancelled_callback_never_fires():
    clock = FakeClock()
    scheduler = PolledScheduler(clock)
    fired = []
    handle = scheduler.call_later(1.0, lambda: fired.append("tick"))
    handle.cancel()

    clock.now = 5
    scheduler.poll()

    assert fired == []
    assert handle.cancelled()


def test_rescheduling_catches_up_in_order():
    clock = FakeClock()
    scheduler = PolledScheduler(clock)
    fired = []

    def tick():
        fired.append(len(fired))
        if len(fired) < 5:
            scheduler.call_later(1.0, tick)

    scheduler.call_later(1.0, tick)
    clock.now = 3.5
    assert scheduler.poll() == 3
    assert scheduler.pending == 1

    clock.now = 100
    scheduler.poll()
    assert fired == [0, 1, 2, 3, 4]
    assert scheduler.pending == 0


def test_failing_callback_does_not_stop_others():
    clock = FakeClock()
    scheduler = PolledScheduler(clock)
    fired = []

    def boom():
        raise RuntimeError("boom")

    scheduler.call_later(1.0, boom)
    scheduler.call_later(1.0, lambda: fired.append("ok"))
    clock.now = 1
    scheduler.poll()

    assert fired == ["ok"]


@pytest.mark.asyncio
async def test_asyncio_scheduler_fires_and_cancels():
    scheduler = AsyncioScheduler()
    fired = []
    scheduler.call_later(0.01, lambda: fired.append("a"))
    cancelled = scheduler.call_later(0.01, lambda: fired.append("b"))
    cancelled.cancel()

    await asyncio.sleep(0.05)

    assert fired == ["a"]
    assert cancelled.cancelled()
