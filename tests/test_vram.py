import pytest

from dreamland_viewer.errors import OutOfRangeError
from dreamland_viewer.vram import (
    SIGNED_BASE,
    UNSIGNED_BASE,
    WINDOW_SIZE,
    addressing_base,
    compose_stage_vram,
    compose_vram,
    vram_start,
)


def tile(window: bytes, slot: int) -> bytes:
    return window[slot * 16:(slot + 1) * 16]


@pytest.mark.parametrize("control, start, base", [
    (0x63, 0x9000, SIGNED_BASE),
    (0x00, 0x9630, SIGNED_BASE),
    (0xE3, 0x8800, SIGNED_BASE),
    (0xE4, 0x87F0, UNSIGNED_BASE),
    (0xFF, 0x8640, UNSIGNED_BASE),
])
def test_start_and_addressing_mode(control, start, base):
    assert vram_start(control) == start
    assert addressing_base(start) == base


def test_compose_pads_to_window():
    vram = compose_vram(bytes([0x63, 0x2F, 0xAA, 0xFF]), 0)
    assert vram.base == SIGNED_BASE
    assert vram.start == 0x9000
    assert len(vram.data) == WINDOW_SIZE
    assert vram.data[:0x800] == bytes(0x800)
    assert tile(vram.data, 0x80) == bytes([0xAA] * 16)
    assert tile(vram.data, 0x81) == bytes(16)


def test_compose_unsigned_mode_offset():
    vram = compose_vram(bytes([0xE4, 0x20, 0x77, 0xFF]), 0)
    assert vram.base == UNSIGNED_BASE
    assert vram.data[0x7EF] == 0
    assert vram.data[0x7F0] == 0x77
    assert len(vram.data) == WINDOW_SIZE


def test_static_tiles_always_written():
    # Fill the whole window from 0x8800 with 0x11 so the fixed slots would be covered
    stream = bytes([0xE3]) + bytes([0xE4, 0xFF, 0x11]) * 24 + bytes([0xFF])
    vram = compose_vram(stream, 0)
    assert tile(vram.data, 0xFC) == bytes([0x11] * 16)
    assert tile(vram.data, 0xFD) == bytes([0xFF, 0x00] * 8)
    assert tile(vram.data, 0xFE) == bytes([0x00, 0xFF] * 8)
    assert tile(vram.data, 0xFF) == bytes(16)
    assert len(vram.data) == WINDOW_SIZE


def test_overlong_tileset_is_cut_to_window():
    stream = bytes([0x00]) + bytes([0xE8, 0xFF, 0x12, 0x34]) * 5 + bytes([0xFF])
    vram = compose_vram(stream, 0)
    assert len(vram.data) == WINDOW_SIZE
    assert vram.data[0xE30:0xE34] == bytes([0x12, 0x34, 0x12, 0x34])


def test_compose_does_not_touch_source():
    source = bytes([0x63, 0x2F, 0xAA, 0xFF])
    compose_vram(source, 0)
    assert source == bytes([0x63, 0x2F, 0xAA, 0xFF])


def test_compose_reads_control_outside_rom():
    with pytest.raises(OutOfRangeError):
        compose_vram(bytes(4), 10)


def test_stage_vram_fixed_tiles_then_data():
    vram = compose_stage_vram(bytes([0x55] * 16), 0x9000)
    assert vram.base == SIGNED_BASE
    assert tile(vram.data, 0x80) == bytes([0x55] * 16)
    assert tile(vram.data, 0xFC) == bytes([0xFF] * 16)
    assert tile(vram.data, 0xFD) == bytes([0x00, 0xFF] * 8)
    assert tile(vram.data, 0xFE) == bytes([0xFF, 0x00] * 8)
    assert tile(vram.data, 0xFF) == bytes(16)


def test_stage_vram_tileset_overwrites_fixed_tiles():
    vram = compose_stage_vram(bytes([0x42] * 16), 0x97C0)
    assert tile(vram.data, 0xFC) == bytes([0x42] * 16)


def test_stage_vram_drops_bytes_outside_window():
    vram = compose_stage_vram(bytes([0x01] * 0x810), 0x8000)
    assert len(vram.data) == WINDOW_SIZE
    assert vram.data[:0x10] == bytes([0x01] * 0x10)
    assert vram.data[0x10] == 0
