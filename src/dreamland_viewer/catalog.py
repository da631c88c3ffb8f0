"""Level catalog: every level (or stage screen) a cartridge holds, fully decoded.

The second game keeps a table of banked pointers to level headers; each
header points at an asset bundle (tileset plus four quadrant tables for its
2x2 metatiles) followed by the compressed metatile stream.

The first game has five fixed stages. Per stage it keeps a pointer to a list
of screen records, a tileset and a table of 4-byte metatiles.
"""

import logging as log
from dataclasses import dataclass
from typing import Iterator, Union

from .decompress import decompress
from .errors import OutOfRangeError, RomDataError, UnknownLevelIndexError
from .profiles import LEVEL_TABLE, STAGE_TABLE, GameProfile
from .rom_utils import linear_address, mapped_address, read_block, read_u8, require_rom
from .vram import compose_stage_vram, compose_vram

QUADRANTS = ("top-left", "top-right", "bottom-left", "bottom-right")
METATILE_TABLE_SIZE = 0x800
SCREEN_RECORD_SIZE = 8


@dataclass(frozen=True)
class Pointer:
    address: int
    bank: int

    @property
    def linear(self) -> int:
        return linear_address(self.address, self.bank)

    @property
    def mapped(self) -> int:
        return mapped_address(self.address, self.bank)

    def __str__(self) -> str:
        return f"{self.bank:02X}:{self.address:04X}"


@dataclass(frozen=True)
class Geometry:
    left: int
    top: int
    right: int
    bottom: int


@dataclass(frozen=True)
class AssetBundle:
    pointer: Pointer
    tiles: Pointer
    vram: bytes
    vram_base: int
    chunk_size: int
    layers: tuple[bytes, bytes, bytes, bytes]


@dataclass(frozen=True)
class LevelDescriptor:
    index: int
    pointer: Pointer
    vertical_slices: int
    horizontal_slices: int
    geometry: Geometry
    assets: AssetBundle
    blocks: bytes
    # Raw bytes of the sub-tables the viewer does not interpret yet
    object_table: bytes
    door_table: bytes
    unknown: int

    @property
    def vram(self) -> bytes:
        return self.assets.vram


@dataclass(frozen=True)
class StageScreen:
    index: int
    stage: int
    screen: int
    pointer: Pointer
    width: int
    height: int
    tileset_stage: int
    vram: bytes
    metatiles: bytes
    blocks: bytes


CatalogEntry = Union[LevelDescriptor, StageScreen]


@dataclass(frozen=True)
class LevelCatalog:
    profile: GameProfile
    levels: tuple[CatalogEntry, ...]

    def __len__(self) -> int:
        return len(self.levels)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self.levels)

    def level(self, index: int) -> CatalogEntry:
        if not 0 <= index < len(self.levels):
            raise UnknownLevelIndexError(index, len(self.levels))
        return self.levels[index]


def _pointer_le(rom: bytes, pos: int) -> Pointer:
    """(low, high, bank) triple."""
    lo, hi, bank = read_block(rom, pos, 3)
    return Pointer((hi << 8) | lo, bank)


def _pointer_be(rom: bytes, pos: int) -> Pointer:
    """(bank, high, low) triple."""
    bank, hi, lo = read_block(rom, pos, 3)
    return Pointer((hi << 8) | lo, bank)


# ─── Level-table layout ──────────────────────────────────────────────────────

def parse_level_pointers(rom: bytes, profile: GameProfile) -> list[Pointer]:
    pos = linear_address(profile.level_table_address, profile.level_table_bank) + profile.level_table_skip
    return [_pointer_le(rom, pos + i * 3) for i in range(profile.level_count)]


def parse_assets(rom: bytes, pointer: Pointer) -> AssetBundle:
    pos = pointer.linear
    tiles = _pointer_le(rom, pos)
    vram = compose_vram(rom, tiles.linear)

    chunk_size = read_u8(rom, pos + 3)
    translation = decompress(rom, pos + 4)
    if len(translation) < 4 * chunk_size:
        raise OutOfRangeError(
            f"Metatile tables at 0x{pos + 4:06X} hold {len(translation)} bytes, "
            f"need {4 * chunk_size} for chunk size {chunk_size}",
            pos + 4,
        )

    # One table per quadrant, in QUADRANTS order
    layers = tuple(translation[i * chunk_size:(i + 1) * chunk_size] for i in range(4))
    return AssetBundle(pointer, tiles, vram.data, vram.base, chunk_size, layers)


def parse_level(rom: bytes, index: int, pointer: Pointer) -> LevelDescriptor:
    pos = pointer.linear
    vertical, horizontal = read_block(rom, pos, 2)
    geometry = Geometry(*read_block(rom, pos + 2, 4))
    assets = parse_assets(rom, _pointer_le(rom, pos + 6))
    object_table = read_block(rom, pos + 9, 3)
    door_table = read_block(rom, pos + 12, 3)
    unknown = read_u8(rom, pos + 15)
    blocks = decompress(rom, pos + 16)

    log.debug(
        f"Level {index} @ {pointer}: {vertical}x{horizontal} slices, "
        f"{len(blocks)} metatiles, chunk size {assets.chunk_size}"
    )
    return LevelDescriptor(
        index=index,
        pointer=pointer,
        vertical_slices=vertical,
        horizontal_slices=horizontal,
        geometry=geometry,
        assets=assets,
        blocks=blocks,
        object_table=object_table,
        door_table=door_table,
        unknown=unknown,
    )


def _parse_level_table(rom: bytes, profile: GameProfile) -> list[LevelDescriptor]:
    levels = []
    for index, pointer in enumerate(parse_level_pointers(rom, profile)):
        try:
            levels.append(parse_level(rom, index, pointer))
        except RomDataError as e:
            e.level = index
            raise
    return levels


# ─── Stage-table layout ──────────────────────────────────────────────────────

def parse_stage_tileset(rom: bytes, profile: GameProfile, stage: int):
    """Return (vram, metatiles) for one stage."""
    record = read_block(rom, profile.tileset_table + stage * 5, 5)
    tiles = Pointer((record[1] << 8) | record[2], record[0])
    # The destination is stored little-endian, unlike the pointer before it
    destination = record[3] | (record[4] << 8)
    vram = compose_stage_vram(decompress(rom, tiles.mapped, long_counts=profile.long_counts), destination)

    table = _pointer_be(rom, profile.metatile_table + stage * 3)
    metatiles = decompress(rom, table.mapped, long_counts=profile.long_counts)
    metatiles += bytes(max(0, METATILE_TABLE_SIZE - len(metatiles)))
    return vram.data, metatiles


def parse_stage_screen(rom: bytes, profile: GameProfile, index: int, stage: int, screen: int,
                       tilesets: dict) -> StageScreen:
    lo, hi = read_block(rom, profile.room_table + stage * 2, 2)
    record = read_block(rom, ((hi << 8) | lo) + screen * SCREEN_RECORD_SIZE, 5)
    pointer = Pointer((record[1] << 8) | record[2], record[0])
    width, height = record[3], record[4]

    tileset_stage = profile.tileset_stage(stage, screen)
    if tileset_stage not in tilesets:
        tilesets[tileset_stage] = parse_stage_tileset(rom, profile, tileset_stage)
    vram, metatiles = tilesets[tileset_stage]

    blocks = decompress(rom, pointer.mapped, long_counts=profile.long_counts)
    log.debug(f"Stage {stage} screen {screen} @ {pointer}: {width}x{height}, tileset of stage {tileset_stage}")
    return StageScreen(
        index=index,
        stage=stage,
        screen=screen,
        pointer=pointer,
        width=width,
        height=height,
        tileset_stage=tileset_stage,
        vram=vram,
        metatiles=metatiles,
        blocks=blocks,
    )


def _parse_stage_table(rom: bytes, profile: GameProfile) -> list[StageScreen]:
    screens = []
    tilesets: dict = {}
    for stage, count in enumerate(profile.screen_counts):
        for screen in range(count):
            index = len(screens)
            try:
                screens.append(parse_stage_screen(rom, profile, index, stage, screen, tilesets))
            except RomDataError as e:
                e.level = index
                raise
    return screens


_STRATEGIES = {
    LEVEL_TABLE: _parse_level_table,
    STAGE_TABLE: _parse_stage_table,
}


def parse_catalog(rom: bytes, profile: GameProfile) -> LevelCatalog:
    """Decode every level of ``rom`` as laid out by ``profile``.

    Raises:
        EmptyInputError: ``rom`` is empty
        RomDataError: a level could not be decoded. The error keeps its own
            type (``OutOfRangeError``, ``TruncatedStreamError``) and carries
            the failing entry on ``level``
    """
    rom = require_rom(rom)
    levels = _STRATEGIES[profile.layout](rom, profile)
    log.info(f"Parsed {len(levels)} levels ({profile.title})")
    return LevelCatalog(profile, tuple(levels))
