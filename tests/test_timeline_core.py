from __future__ import annotations

from dataclasses import dataclass

import pytest

from sound_memory.timeline import Timeline


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def test_steps_fire_in_due_order_once_due() -> None:
    clock = FakeClock()
    tl = Timeline(clock)
    fired: list[str] = []
    tl.schedule(0.5, lambda: fired.append("b"))
    tl.schedule(0.2, lambda: fired.append("a"))
    tl.schedule(0.5, lambda: fired.append("c"))

    tl.update()
    assert fired == []

    clock.advance(0.3)
    assert tl.update() == 1
    assert fired == ["a"]

    clock.advance(1.0)
    assert tl.update() == 2
    assert fired == ["a", "b", "c"]
    assert tl.pending_count() == 0


def test_invalidate_drops_pending_steps() -> None:
    clock = FakeClock()
    tl = Timeline(clock)
    fired: list[int] = []
    tl.schedule(0.1, lambda: fired.append(1))
    gen = tl.generation

    assert tl.invalidate() == gen + 1
    tl.schedule(0.1, lambda: fired.append(2))

    clock.advance(1.0)
    tl.update()
    assert fired == [2]


def test_step_that_invalidates_stops_later_steps_of_its_generation() -> None:
    clock = FakeClock()
    tl = Timeline(clock)
    fired: list[str] = []

    def first() -> None:
        fired.append("first")
        tl.invalidate()

    tl.schedule(0.1, first)
    tl.schedule(0.2, lambda: fired.append("stale"))

    clock.advance(1.0)
    tl.update()
    assert fired == ["first"]


def test_chained_steps_are_timed_from_the_parent_due_time() -> None:
    clock = FakeClock()
    tl = Timeline(clock)
    seen: list[float] = []

    def first() -> None:
        seen.append(tl.now())
        tl.schedule(0.5, lambda: seen.append(tl.now()))

    tl.schedule(1.0, first)

    # One late poll fires both: the child is due at 1.5, not 2.4 + 0.5.
    clock.advance(2.4)
    assert tl.update() == 2
    assert seen == pytest.approx([1.0, 1.5])


def test_cancel_removes_a_single_step() -> None:
    clock = FakeClock()
    tl = Timeline(clock)
    fired: list[int] = []
    handle = tl.schedule(0.1, lambda: fired.append(1))
    tl.schedule(0.1, lambda: fired.append(2))

    assert tl.cancel(handle) is True
    assert tl.cancel(handle) is False
    clock.advance(0.2)
    tl.update()
    assert fired == [2]


def test_negative_delay_is_rejected() -> None:
    tl = Timeline(FakeClock())
    with pytest.raises(ValueError):
        tl.schedule(-0.1, lambda: None)
