"""Turn a decoded level into positioned 8x8 tiles.

Both games build their maps out of 16x16 metatiles, each four 8x8 tiles
(top-left, top-right, bottom-left, bottom-right). The second game streams
metatiles in 16x16-metatile chunks: a chunk is filled row by row, chunks run
left to right for ``vertical_slices`` chunks, then the next band of chunks
starts below.
"""

from dataclasses import dataclass

from .catalog import CatalogEntry, LevelDescriptor, StageScreen
from .errors import OutOfRangeError
from .vram import TILE_SIZE

CHUNK_TILES = 32  # 16 metatiles of 2 tiles
TILE_PIXELS = 8


@dataclass(frozen=True)
class TilePlacement:
    pixels: bytes
    column: int
    row: int


@dataclass(frozen=True)
class LevelMap:
    width: int
    height: int
    placements: tuple[TilePlacement, ...]


def tile_slot(tile: int) -> int:
    """VRAM slot of a tile index under signed (0x8800) addressing."""
    if tile > 0x7F:
        return tile % 0x80
    return tile + 0x80


def tile_pixels(vram: bytes, tile: int) -> bytes:
    offset = tile_slot(tile) * TILE_SIZE
    return vram[offset:offset + TILE_SIZE]


def _quadrants(level: LevelDescriptor, metatile: int) -> list[int]:
    if metatile >= level.assets.chunk_size:
        raise OutOfRangeError(
            f"Level {level.index}: metatile 0x{metatile:02X} is beyond the "
            f"{level.assets.chunk_size}-entry metatile tables",
            metatile,
        )
    return [layer[metatile] for layer in level.assets.layers]


def assemble_level(level: LevelDescriptor) -> LevelMap:
    placements = []
    vram = level.vram

    x = old_x = 0
    y = old_y = 0
    vertical_slice = 0

    for metatile in level.blocks:
        tl, tr, bl, br = _quadrants(level, metatile)
        placements.append(TilePlacement(tile_pixels(vram, tl), x, y))
        placements.append(TilePlacement(tile_pixels(vram, tr), x + 1, y))
        placements.append(TilePlacement(tile_pixels(vram, bl), x, y + 1))
        placements.append(TilePlacement(tile_pixels(vram, br), x + 1, y + 1))
        x += 2

        # End of a metatile row inside the chunk
        if x % CHUNK_TILES == 0:
            y += 2
            x = old_x

            # Chunk full, move right to the next one
            if y % CHUNK_TILES == 0:
                y = old_y
                x += CHUNK_TILES
                old_x = x
                vertical_slice += 1

        if vertical_slice >= level.vertical_slices:
            y += CHUNK_TILES
            old_y = y
            x = old_x = 0
            vertical_slice = 0

    height = (max(p.row for p in placements) + 1) * TILE_PIXELS if placements else 0
    return LevelMap(level.vertical_slices * CHUNK_TILES * TILE_PIXELS, height, tuple(placements))


def assemble_screen(screen: StageScreen) -> LevelMap:
    needed = screen.width * screen.height
    if len(screen.blocks) < needed:
        raise OutOfRangeError(
            f"Stage {screen.stage} screen {screen.screen}: map holds {len(screen.blocks)} "
            f"metatiles, {screen.width}x{screen.height} needs {needed}",
            len(screen.blocks),
        )

    placements = []
    for x in range(screen.width):
        for y in range(screen.height):
            metatile = screen.blocks[x + y * screen.width]
            tl, tr, bl, br = screen.metatiles[metatile * 4:metatile * 4 + 4]
            placements.append(TilePlacement(tile_pixels(screen.vram, tl), x * 2, y * 2))
            placements.append(TilePlacement(tile_pixels(screen.vram, tr), x * 2 + 1, y * 2))
            placements.append(TilePlacement(tile_pixels(screen.vram, bl), x * 2, y * 2 + 1))
            placements.append(TilePlacement(tile_pixels(screen.vram, br), x * 2 + 1, y * 2 + 1))

    return LevelMap(screen.width * 16, screen.height * 16, tuple(placements))


def assemble(entry: CatalogEntry) -> LevelMap:
    if isinstance(entry, StageScreen):
        return assemble_screen(entry)
    return assemble_level(entry)
