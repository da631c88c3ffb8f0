"""Simulated tile VRAM.

Levels are drawn from a flat 0x1800-byte window standing in for the Game
Boy's tile data area. Its logical start (``base``) is 0x8000 or 0x8800
depending on which tile addressing mode the game picked for the tileset.
"""

import logging as log
from dataclasses import dataclass

from .decompress import decompress
from .rom_utils import read_u8

WINDOW_SIZE = 0x1800
TILE_SIZE = 16

UNSIGNED_BASE = 0x8000
SIGNED_BASE = 0x8800

# Tiles the second game always shows at the end of the 0x8800 block
STATIC_TILES = (
    (0x7D + 0x80, bytes([0xFF, 0x00] * 8)),
    (0x7E + 0x80, bytes([0x00, 0xFF] * 8)),
    (0x7F + 0x80, bytes(TILE_SIZE)),
)

# Tiles the first game keeps at 0x97C0-0x97FF
STAGE_STATIC_TILES = (
    (0xFC, bytes([0xFF] * TILE_SIZE)),
    (0xFD, bytes([0x00, 0xFF] * 8)),
    (0xFE, bytes([0xFF, 0x00] * 8)),
    (0xFF, bytes(TILE_SIZE)),
)


@dataclass(frozen=True)
class ComposedVram:
    data: bytes
    base: int
    start: int


def vram_start(control: int) -> int:
    return (0x9630 - (control << 4)) & 0xFFFF


def addressing_base(start: int) -> int:
    return UNSIGNED_BASE if start < SIGNED_BASE else SIGNED_BASE


def with_tiles(window: bytes, tiles) -> bytes:
    """Return a copy of ``window`` with each (slot, 16 bytes) pair written in."""
    out = bytearray(window)
    for slot, pattern in tiles:
        out[slot * TILE_SIZE:(slot + 1) * TILE_SIZE] = pattern
    return bytes(out)


def pad_window(tiles: bytes, offset: int) -> bytes:
    """Place ``tiles`` at ``offset`` inside an otherwise zeroed window."""
    padded = bytes(offset) + tiles
    if len(padded) > WINDOW_SIZE:
        log.debug(f"Tile data overruns the VRAM window by {len(padded) - WINDOW_SIZE} bytes; cutting")
        return padded[:WINDOW_SIZE]
    return padded + bytes(WINDOW_SIZE - len(padded))


def compose_vram(source: bytes, pos: int) -> ComposedVram:
    """Build the VRAM window for a tileset stored at ``pos``.

    The first byte tells where the game starts writing in VRAM, which also
    fixes the addressing mode; the compressed tiles follow it.
    """
    start = vram_start(read_u8(source, pos))
    base = addressing_base(start)
    tiles = decompress(source, pos + 1)
    window = with_tiles(pad_window(tiles, start - base), STATIC_TILES)
    log.debug(f"Tileset 0x{pos:06X}: {len(tiles)} bytes at 0x{start:04X} (base 0x{base:04X})")
    return ComposedVram(window, base, start)


def compose_stage_vram(tiles: bytes, destination: int) -> ComposedVram:
    """Build the first game's VRAM window: fixed tiles, then the tileset copied
    to ``destination``. Bytes falling outside 0x8800-0x9FFF are dropped."""
    window = bytearray(with_tiles(bytes(WINDOW_SIZE), STAGE_STATIC_TILES))
    offset = destination - SIGNED_BASE
    for i, value in enumerate(tiles):
        if 0 <= offset + i < WINDOW_SIZE:
            window[offset + i] = value
    return ComposedVram(bytes(window), SIGNED_BASE, destination)
