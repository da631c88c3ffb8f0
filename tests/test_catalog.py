"""Tests for level catalog parsing against synthetic ROM images."""

from dataclasses import replace

import pytest

from dreamland_viewer.catalog import Geometry, LevelDescriptor, Pointer, StageScreen, parse_catalog
from dreamland_viewer.errors import (
    EmptyInputError,
    OutOfRangeError,
    TruncatedStreamError,
    UnknownLevelIndexError,
)
from dreamland_viewer.vram import SIGNED_BASE, WINDOW_SIZE
from rom_builder import build_level_table_rom, build_stage_table_rom


@pytest.fixture(scope="module")
def level_catalog():
    rom, profile = build_level_table_rom()
    return parse_catalog(rom, profile)


@pytest.fixture(scope="module")
def stage_catalog():
    rom, profile = build_stage_table_rom()
    return parse_catalog(rom, profile)


def test_level_table_entries(level_catalog):
    assert len(level_catalog) == 2
    assert all(isinstance(level, LevelDescriptor) for level in level_catalog)
    assert [level.index for level in level_catalog] == [0, 1]


def test_level_header(level_catalog):
    level = level_catalog.level(0)
    assert level.pointer == Pointer(0x5200, 8)
    assert level.vertical_slices == 1
    assert level.horizontal_slices == 1
    assert level.geometry == Geometry(left=0, top=0, right=0x20, bottom=0x10)
    assert level.object_table == bytes([0x11, 0x12, 0x13])
    assert level.door_table == bytes([0x21, 0x22, 0x23])
    assert level.unknown == 0x99
    assert level.blocks == bytes([0x00, 0x01])

    other = level_catalog.level(1)
    assert other.vertical_slices == 2
    assert other.geometry == Geometry(1, 2, 3, 4)
    assert other.blocks == bytes([0x01, 0x01])


def test_asset_bundle(level_catalog):
    assets = level_catalog.level(0).assets
    assert assets.pointer == Pointer(0x5300, 8)
    assert assets.tiles == Pointer(0x5400, 8)
    assert assets.vram_base == SIGNED_BASE
    assert len(assets.vram) == WINDOW_SIZE
    assert assets.vram[0x800:0x810] == bytes([0xAA] * 16)
    assert assets.chunk_size == 2
    assert assets.layers == (
        bytes([0x80, 0x81]),
        bytes([0x82, 0x83]),
        bytes([0x00, 0x01]),
        bytes([0x7F, 0x05]),
    )


def test_unknown_level_index(level_catalog):
    with pytest.raises(UnknownLevelIndexError) as excinfo:
        level_catalog.level(2)
    assert excinfo.value.index == 2
    assert excinfo.value.count == 2
    with pytest.raises(UnknownLevelIndexError):
        level_catalog.level(-1)


def test_empty_input():
    rom, profile = build_level_table_rom()
    with pytest.raises(EmptyInputError):
        parse_catalog(b"", profile)


def test_level_error_carries_index():
    # Third pointer aims at bank 0x40, far past the end of the image
    rom, profile = build_level_table_rom(extra_pointers=[(0x00, 0x40, 0x40)])
    with pytest.raises(OutOfRangeError) as excinfo:
        parse_catalog(rom, profile)
    assert excinfo.value.level == 2
    assert str(excinfo.value).startswith("Level 2: ")


def test_short_metatile_tables():
    rom, profile = build_level_table_rom()
    rom = bytearray(rom)
    # Chunk size 3 needs 12 bytes of quadrant tables but only 8 are stored
    rom[0x21303] = 0x03
    with pytest.raises(OutOfRangeError) as excinfo:
        parse_catalog(bytes(rom), profile)
    assert excinfo.value.level == 0


def test_unterminated_block_stream():
    rom, profile = build_level_table_rom()
    rom = bytearray(rom)
    # Move level 0's header to the last 16 bytes so its block stream has no room
    rom[0x23FF0:0x24000] = rom[0x21200:0x21210]
    rom[0x21120:0x21123] = bytes([0xF0, 0x7F, 0x08])
    with pytest.raises(TruncatedStreamError) as excinfo:
        parse_catalog(bytes(rom), replace(profile, level_count=1))
    assert excinfo.value.level == 0
    assert "Level 0: " in str(excinfo.value)


def test_stage_table_entries(stage_catalog):
    assert len(stage_catalog) == 2
    first, second = stage_catalog
    assert isinstance(first, StageScreen)
    assert (first.stage, first.screen, first.index) == (0, 0, 0)
    assert (second.stage, second.screen, second.index) == (0, 1, 1)
    assert first.pointer == Pointer(0x4100, 1)
    assert (first.width, first.height) == (2, 1)
    assert (second.width, second.height) == (1, 2)
    assert first.blocks == bytes([0x00, 0x01])
    assert second.blocks == bytes([0x01, 0x00])


def test_stage_tileset(stage_catalog):
    screen = stage_catalog.level(0)
    assert screen.tileset_stage == 0
    assert len(screen.vram) == WINDOW_SIZE
    assert screen.vram[0x800:0x810] == bytes([0x55] * 16)
    assert screen.vram[0xFC0:0xFD0] == bytes([0xFF] * 16)
    assert len(screen.metatiles) == 0x800
    assert screen.metatiles[:8] == bytes([0x00, 0x01, 0x02, 0x03, 0x80, 0x81, 0x7C, 0x7F])
    assert screen.metatiles[8:] == bytes(0x800 - 8)


def test_stage_tileset_override():
    rom, profile = build_stage_table_rom()
    rom = bytearray(rom)
    # Stage 1 with one screen that borrows stage 0's tileset
    rom[profile.room_table + 2:profile.room_table + 4] = bytes([0x08, 0x39])
    profile = replace(profile, screen_counts=(2, 1), tileset_overrides=((1, 0, 0),))
    catalog = parse_catalog(bytes(rom), profile)
    borrowed = catalog.level(2)
    assert (borrowed.stage, borrowed.screen, borrowed.tileset_stage) == (1, 0, 0)
    assert borrowed.vram == catalog.level(0).vram
    assert borrowed.blocks == bytes([0x01, 0x00])


def test_stage_screen_in_home_bank():
    rom, profile = build_stage_table_rom()
    rom = bytearray(rom)
    # Bank 3 does not exist in this image; 0x0200 is read from the home bank
    rom[0x3900:0x3903] = bytes([0x03, 0x02, 0x00])
    rom[0x0200:0x0204] = bytes([0x01, 0x01, 0x01, 0xFF])
    rom[profile.metatile_table:profile.metatile_table + 3] = bytes([0x03, 0x03, 0x00])
    rom[0x0300:0x0306] = bytes([0x03, 0x04, 0x05, 0x06, 0x07, 0xFF])
    screen = parse_catalog(bytes(rom), profile).level(0)
    assert screen.pointer == Pointer(0x0200, 3)
    assert screen.blocks == bytes([0x01, 0x01])
    assert screen.metatiles[:4] == bytes([0x04, 0x05, 0x06, 0x07])


def test_mapped_pointer():
    assert Pointer(0x0200, 3).mapped == 0x0200
    assert Pointer(0x4200, 3).mapped == 0xC200
    assert Pointer(0x0200, 3).linear == 0xC200
