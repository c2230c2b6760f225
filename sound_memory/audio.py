"""Pygame audio adapter for slot tones.

This stays outside deterministic core logic: the engine only ever calls
``emit_tone(slot)``.
"""

from __future__ import annotations

import logging
import math
from array import array

import pygame

from .tones import ToneRegistry

logger = logging.getLogger(__name__)


class PygameToneSink:
    _sample_rate = 22050
    _amp = 32767

    def __init__(self, registry: ToneRegistry, *, duration_s: float = 0.5, gain: float = 0.5) -> None:
        self._registry = registry
        self._duration_s = float(duration_s)
        self._gain = float(gain)
        self._available = False
        self._sounds: dict[str, pygame.mixer.Sound] = {}

        try:
            if pygame.mixer.get_init() is None:
                pygame.mixer.init(frequency=self._sample_rate, size=-16, channels=1, buffer=512)
            pygame.mixer.set_num_channels(max(8, registry.size))
            for tone in registry.tones():
                self._sounds[tone.tone_id] = self._build_tone_sound(tone.frequency_hz)
            self._available = True
        except Exception:
            logger.warning("audio unavailable, tones disabled", exc_info=True)
            self._available = False

    @property
    def available(self) -> bool:
        return self._available

    def emit_tone(self, slot: int) -> None:
        if not self._available:
            return
        sound = self._sounds.get(self._registry.tone_for(slot).tone_id)
        if sound is not None:
            sound.play()

    def _build_tone_sound(self, frequency_hz: float) -> pygame.mixer.Sound:
        pcm = self._render_tone_pcm(frequency_hz, self._duration_s, gain=self._gain)
        return pygame.mixer.Sound(buffer=pcm.tobytes())

    def _render_tone_pcm(self, frequency_hz: float, duration_s: float, *, gain: float) -> array[int]:
        # Linear attack over the first 0.1 s, linear release to silence at the end.
        sample_count = max(1, int(self._sample_rate * duration_s))
        attack_n = max(1, min(sample_count, int(self._sample_rate * 0.1)))
        out = array("h")
        for idx in range(sample_count):
            if idx < attack_n:
                envelope = idx / float(attack_n)
            else:
                envelope = (sample_count - idx - 1) / float(max(1, sample_count - attack_n))
            phase = (2.0 * math.pi * float(frequency_hz) * idx) / float(self._sample_rate)
            sample = math.sin(phase) * gain * max(0.0, envelope)
            out.append(int(max(-1.0, min(1.0, sample)) * self._amp))
        return out
