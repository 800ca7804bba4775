"""Carousel slot scheduler: independent, randomized rotation per feed slot."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

from ...config.runtime import RuntimeSettings

T = TypeVar("T")

_LOGGER = logging.getLogger(__name__)


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ranked items into consecutive groups of ``size``; the last may be shorter."""
    if size < 1:
        raise ValueError(f"group size must be >= 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


@dataclass
class CarouselSlot(Generic[T]):
    """One rotation unit of the feed grid."""

    slot_id: int
    members: list[T]
    current_index: int = 0
    paused: bool = False
    _resumed: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    def __post_init__(self) -> None:
        self._resumed.set()

    @property
    def rotates(self) -> bool:
        return len(self.members) > 1

    def current(self) -> T | None:
        """The member on top. Reading it never affects rotation."""
        if not self.members:
            return None
        return self.members[self.current_index]

    def advance(self) -> None:
        if self.rotates:
            self.current_index = (self.current_index + 1) % len(self.members)

    def pause(self) -> None:
        self.paused = True
        self._resumed.clear()

    def resume(self) -> None:
        self.paused = False
        self._resumed.set()

    async def wait_until_resumed(self) -> None:
        await self._resumed.wait()


class CarouselScheduler:
    """Runs one asyncio task per multi-member slot.

    Each task sleeps for a delay drawn from ``rotation_range`` before every
    advance, so slots drift apart instead of flipping together. ``load``
    cancels all running tasks before building the new grid; it must be
    called from inside a running event loop.
    """

    def __init__(
        self,
        group_size: int = 6,
        rotation_range: tuple[float, float] = (3.0, 6.0),
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        low, high = rotation_range
        if low <= 0 or low > high:
            raise ValueError(f"invalid rotation range {rotation_range!r}")
        self._group_size = group_size
        self._range = (low, high)
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._logger = logger or _LOGGER
        self._slots: list[CarouselSlot] = []
        self._tasks: dict[int, asyncio.Task] = {}

    @classmethod
    def from_settings(cls, settings: RuntimeSettings, **kwargs: Any) -> CarouselScheduler:
        return cls(
            group_size=settings.carousel_group_size,
            rotation_range=(settings.rotation_min_seconds, settings.rotation_max_seconds),
            **kwargs,
        )

    @property
    def slots(self) -> list[CarouselSlot]:
        return list(self._slots)

    @property
    def running_tasks(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def load(self, ranked: Sequence[T]) -> list[CarouselSlot[T]]:
        """Replace the grid with slots built from ``ranked`` and start their timers."""
        self.cancel_all()
        self._slots = [CarouselSlot(slot_id=i, members=group) for i, group in enumerate(chunk(ranked, self._group_size))]
        loop = asyncio.get_running_loop() if any(s.rotates for s in self._slots) else None
        for slot in self._slots:
            if slot.rotates:
                self._tasks[slot.slot_id] = loop.create_task(self._rotate(slot), name=f"carousel-slot-{slot.slot_id}")
        self._logger.debug(
            "carousel_loaded",
            extra={"slots": len(self._slots), "rotating": len(self._tasks)},
        )
        return self.slots

    def slot(self, slot_id: int) -> CarouselSlot:
        return self._slots[slot_id]

    def pause(self, slot_id: int) -> None:
        self._slots[slot_id].pause()

    def resume(self, slot_id: int) -> None:
        self._slots[slot_id].resume()

    def current(self, slot_id: int) -> Any:
        return self._slots[slot_id].current()

    def state(self) -> list[dict]:
        """Per-slot rotation state for the presentation layer."""
        return [
            {"slot_id": s.slot_id, "size": len(s.members), "current_index": s.current_index, "paused": s.paused}
            for s in self._slots
        ]

    def cancel_all(self) -> None:
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()

    async def close(self) -> None:
        tasks = list(self._tasks.values())
        self.cancel_all()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._slots = []

    async def _rotate(self, slot: CarouselSlot) -> None:
        low, high = self._range
        while True:
            if slot.paused:
                await slot.wait_until_resumed()
                continue
            await self._sleep(self._rng.uniform(low, high))
            if not slot.paused:
                slot.advance()
