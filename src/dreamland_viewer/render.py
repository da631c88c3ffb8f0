"""Blit tile placements onto a grayscale image."""

import logging as log

import numpy as np
from PIL import Image

from .mapper import TILE_PIXELS, LevelMap

# Shade 0 is the lightest, as on the DMG screen
SHADES = np.array([0xFF, 0xAA, 0x55, 0x00], dtype=np.uint8)


def tile_pixels(block: bytes) -> np.ndarray:
    """Decode one 16-byte 2bpp tile into an (8, 8) array of shade indices.

    Each row is two bytes: the first holds bit 0 of every pixel, the second
    bit 1, leftmost pixel in the top bit.
    """
    rows = np.frombuffer(bytes(block), dtype=np.uint8).reshape(8, 2)
    bits = np.unpackbits(rows, axis=1).reshape(8, 2, 8)
    return (bits[:, 0] | (bits[:, 1] << 1)).astype(np.uint8)


def render_level(level_map: LevelMap) -> Image.Image:
    if not level_map.width or not level_map.height:
        _log_dropped(level_map, len(level_map.placements))
        return Image.new("L", (level_map.width, level_map.height))
    canvas = np.zeros((level_map.height, level_map.width), dtype=np.uint8)
    dropped = 0
    for p in level_map.placements:
        x = p.column * TILE_PIXELS
        y = p.row * TILE_PIXELS
        if x + TILE_PIXELS > level_map.width or y + TILE_PIXELS > level_map.height:
            dropped += 1
            continue
        canvas[y:y + TILE_PIXELS, x:x + TILE_PIXELS] = tile_pixels(p.pixels)
    _log_dropped(level_map, dropped)
    return Image.fromarray(SHADES[canvas])


def _log_dropped(level_map: LevelMap, dropped: int) -> None:
    if dropped:
        log.debug(f"Dropped {dropped} tiles outside the {level_map.width}x{level_map.height} image")
