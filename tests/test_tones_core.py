from __future__ import annotations

import pytest

from sound_memory.tones import BUTTON_TONES, TILE_TONES, ToneRegistry


def test_presets_have_expected_board_sizes() -> None:
    assert TILE_TONES.size == 8
    assert BUTTON_TONES.size == 4
    assert TILE_TONES.tone_for(0).frequency_hz == pytest.approx(261.63)
    assert TILE_TONES.tone_for(7).frequency_hz == pytest.approx(523.25)
    assert BUTTON_TONES.tone_for(3).frequency_hz == pytest.approx(523.25)


def test_tone_ids_are_stable_and_unique() -> None:
    a = ToneRegistry((440.0, 880.0))
    b = ToneRegistry((440.0, 880.0))
    assert [t.tone_id for t in a.tones()] == [t.tone_id for t in b.tones()]
    assert len({t.tone_id for t in TILE_TONES.tones()}) == TILE_TONES.size
    assert a.tone_for(1).slot == 1


def test_out_of_range_slot_is_rejected() -> None:
    assert TILE_TONES.contains(7)
    assert not TILE_TONES.contains(8)
    assert not TILE_TONES.contains(-1)
    with pytest.raises(IndexError):
        BUTTON_TONES.tone_for(4)


def test_registry_validation() -> None:
    with pytest.raises(ValueError):
        ToneRegistry(())
    with pytest.raises(ValueError):
        ToneRegistry((440.0, 0.0))
