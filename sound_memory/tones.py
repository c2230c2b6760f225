from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Tone:
    slot: int
    tone_id: str
    frequency_hz: float


class ToneRegistry:
    """Maps board slots to stable tone identifiers."""

    def __init__(self, frequencies: tuple[float, ...]) -> None:
        if not frequencies:
            raise ValueError("a board needs at least one slot")
        if any(f <= 0.0 for f in frequencies):
            raise ValueError("tone frequencies must be > 0")
        self._tones = tuple(
            Tone(slot=idx, tone_id=f"slot-{idx}-{int(round(freq))}hz", frequency_hz=float(freq))
            for idx, freq in enumerate(frequencies)
        )

    @property
    def size(self) -> int:
        return len(self._tones)

    def contains(self, slot: int) -> bool:
        return 0 <= slot < len(self._tones)

    def tone_for(self, slot: int) -> Tone:
        if not self.contains(slot):
            raise IndexError(f"slot {slot} is not on a {self.size}-slot board")
        return self._tones[slot]

    def tones(self) -> tuple[Tone, ...]:
        return self._tones


# C major scale, C4..C5.
TILE_TONES = ToneRegistry((261.63, 293.66, 329.63, 349.23, 392.00, 440.00, 493.88, 523.25))

# C4, E4, G4, C5.
BUTTON_TONES = ToneRegistry((261.63, 329.63, 392.00, 523.25))
