"""Tests for carousel chunking and per-slot rotation.

Rotation tests drive an event loop with asyncio.run and inject a stepping
sleep so the number of advances is deterministic.
"""

import asyncio
import random

import pytest

from adfeed.config.runtime import RuntimeSettings
from adfeed.modules.carousel.scheduler import CarouselScheduler, CarouselSlot, chunk


class SteppingSleep:
    """Lets ``steps`` sleeps complete immediately, then parks every caller."""

    def __init__(self, steps: int):
        self.steps = steps
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if len(self.delays) > self.steps:
            await asyncio.Event().wait()
        await asyncio.sleep(0)


def _carousel_tasks() -> list[asyncio.Task]:
    return [
        t for t in asyncio.all_tasks()
        if t.get_name().startswith("carousel-slot-") and not t.done()
    ]


async def _settle() -> None:
    for _ in range(20):
        await asyncio.sleep(0)


class TestChunk:
    def test_thirteen_by_six(self):
        assert [len(g) for g in chunk(list(range(13)), 6)] == [6, 6, 1]

    def test_preserves_order(self):
        assert chunk(["a", "b", "c", "d"], 3) == [["a", "b", "c"], ["d"]]

    def test_empty(self):
        assert chunk([], 6) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            chunk([1], 0)


class TestSlot:
    def test_advance_wraps(self):
        slot = CarouselSlot(slot_id=0, members=["a", "b", "c"])
        for _ in range(3):
            slot.advance()
        assert slot.current_index == 0

    def test_single_member_never_moves(self):
        slot = CarouselSlot(slot_id=0, members=["a"])
        slot.advance()
        assert slot.current() == "a"
        assert slot.current_index == 0

    def test_pause_and_resume_keep_index(self):
        slot = CarouselSlot(slot_id=0, members=["a", "b"])
        slot.advance()
        slot.pause()
        slot.resume()
        assert slot.current_index == 1

    def test_current_is_a_pure_read(self):
        slot = CarouselSlot(slot_id=0, members=["a", "b"])
        assert [slot.current() for _ in range(3)] == ["a", "a", "a"]


class TestScheduler:
    def test_only_multi_member_slots_get_timers(self):
        async def run():
            scheduler = CarouselScheduler(group_size=6, sleep=SteppingSleep(0))
            slots = scheduler.load(list(range(7)))
            assert [len(s.members) for s in slots] == [6, 1]
            assert scheduler.running_tasks == 1
            await scheduler.close()

        asyncio.run(run())

    def test_rotation_advances_each_slot(self):
        async def run():
            sleep = SteppingSleep(3)
            scheduler = CarouselScheduler(group_size=6, sleep=sleep)
            scheduler.load(list(range(6)))
            await _settle()
            assert scheduler.current(0) == 3
            await scheduler.close()

        asyncio.run(run())

    def test_delays_are_drawn_from_the_configured_range(self):
        async def run():
            sleep = SteppingSleep(10)
            scheduler = CarouselScheduler(
                group_size=2,
                rotation_range=(3.0, 6.0),
                rng=random.Random(7),
                sleep=sleep,
            )
            scheduler.load(list(range(8)))
            await _settle()
            await scheduler.close()
            return sleep.delays

        delays = asyncio.run(run())
        assert delays
        assert all(3.0 <= d <= 6.0 for d in delays)
        assert len(set(delays)) > 1

    def test_single_member_slot_is_never_rotated(self):
        async def run():
            scheduler = CarouselScheduler(group_size=6, sleep=SteppingSleep(5))
            scheduler.load(["only"])
            await _settle()
            assert scheduler.current(0) == "only"
            assert scheduler.slot(0).current_index == 0
            await scheduler.close()

        asyncio.run(run())

    def test_paused_slot_keeps_its_index_until_resumed(self):
        async def run():
            scheduler = CarouselScheduler(group_size=3, sleep=SteppingSleep(2))
            scheduler.load(["a", "b", "c", "d", "e", "f"])
            scheduler.pause(0)
            await _settle()
            assert scheduler.slot(0).current_index == 0
            assert scheduler.slot(1).current_index == 2

            scheduler.resume(0)
            await _settle()
            assert scheduler.state()[0]["paused"] is False
            await scheduler.close()

        asyncio.run(run())

    def test_reload_cancels_previous_timers(self):
        async def run():
            scheduler = CarouselScheduler(group_size=2, sleep=SteppingSleep(0))
            old_slots = scheduler.load(list(range(6)))
            await _settle()
            assert len(_carousel_tasks()) == 3

            scheduler.load(list(range(4)))
            await _settle()
            assert len(_carousel_tasks()) == 2
            assert all(s.current_index == 0 for s in old_slots)
            await scheduler.close()
            await _settle()
            assert _carousel_tasks() == []
            assert scheduler.running_tasks == 0

        asyncio.run(run())

    def test_from_settings(self):
        settings = RuntimeSettings(carousel_group_size=4, rotation_min_seconds=1.0, rotation_max_seconds=2.0)

        async def run():
            sleep = SteppingSleep(1)
            scheduler = CarouselScheduler.from_settings(settings, sleep=sleep)
            slots = scheduler.load([1, 2, 3, 4, 5])
            await _settle()
            await scheduler.close()
            return slots, sleep.delays

        slots, delays = asyncio.run(run())
        assert [len(s.members) for s in slots] == [4, 1]
        assert all(1.0 <= d <= 2.0 for d in delays)

    def test_invalid_rotation_range(self):
        with pytest.raises(ValueError):
            CarouselScheduler(rotation_range=(6.0, 3.0))
