from __future__ import annotations

from enum import StrEnum

from .memory_core import SeededRng


class SequenceGrowth(StrEnum):
    # Append one slot per level to the previous sequence.
    INCREMENTAL = "incremental"
    # Draw a fresh sequence of ``level + offset`` slots every level.
    REGENERATE = "regenerate"


class SequenceGenerator:
    """Deterministic source of slot sequences.

    Slots are independent uniform draws over the board, so adjacent repeats
    can and do occur.
    """

    def __init__(
        self,
        *,
        slot_count: int,
        seed: int,
        growth: SequenceGrowth = SequenceGrowth.INCREMENTAL,
        offset: int = 0,
    ) -> None:
        if slot_count < 1:
            raise ValueError("slot_count must be >= 1")
        if offset < 0:
            raise ValueError("offset must be >= 0")
        self._slot_count = int(slot_count)
        self._growth = growth
        self._offset = int(offset)
        self._rng = SeededRng(seed)

    @property
    def growth(self) -> SequenceGrowth:
        return self._growth

    def expected_length(self, level: int, *, previous_length: int = 0) -> int:
        if self._growth is SequenceGrowth.INCREMENTAL:
            return previous_length + 1
        return level + self._offset

    def first(self) -> tuple[int, ...]:
        return self.extend((), 1)

    def extend(self, previous: tuple[int, ...], level: int) -> tuple[int, ...]:
        if level < 1:
            raise ValueError("level must be >= 1")
        if self._growth is SequenceGrowth.INCREMENTAL:
            return tuple(previous) + (self._draw(),)
        return tuple(self._draw() for _ in range(level + self._offset))

    def _draw(self) -> int:
        return self._rng.randrange(self._slot_count)
