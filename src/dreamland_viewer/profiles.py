"""Per-game layout profiles.

A profile pins down everything that differs between the two cartridges:
where the level tables live, how many entries they hold and which parsing
strategy the catalog uses. Custom profiles can be loaded from YAML, e.g.::

    base: kdl2
    level_count: 12
    level_table_address: "0x511F"
"""

from dataclasses import dataclass, fields, replace
from typing import Any

import yaml

LEVEL_TABLE = "level-table"
STAGE_TABLE = "stage-table"
LAYOUTS = (LEVEL_TABLE, STAGE_TABLE)


class UnknownProfileError(KeyError):
    pass


@dataclass(frozen=True)
class GameProfile:
    name: str
    title: str
    layout: str
    long_counts: bool = False
    # level-table layout
    level_table_address: int = 0
    level_table_bank: int = 0
    level_table_skip: int = 0
    level_count: int = 0
    # stage-table layout (all tables live in bank 0)
    room_table: int = 0
    tileset_table: int = 0
    metatile_table: int = 0
    screen_counts: tuple[int, ...] = ()
    # (stage, screen, stage whose tileset is borrowed)
    tileset_overrides: tuple[tuple[int, int, int], ...] = ()

    def tileset_stage(self, stage: int, screen: int) -> int:
        for o_stage, o_screen, borrowed in self.tileset_overrides:
            if (o_stage, o_screen) == (stage, screen):
                return borrowed
        return stage


KDL2 = GameProfile(
    name="kdl2",
    title="Kirby's Dream Land 2",
    layout=LEVEL_TABLE,
    level_table_address=0x511F,
    level_table_bank=8,
    level_table_skip=1,
    level_count=177,
)

KDL1 = GameProfile(
    name="kdl1",
    title="Kirby's Dream Land",
    layout=STAGE_TABLE,
    long_counts=True,
    room_table=0x38B1,
    tileset_table=0x2070,
    metatile_table=0x20A2,
    screen_counts=(5, 16, 8, 10, 6),
    # Final stage boss rematches reuse the earlier stages' graphics
    tileset_overrides=((4, 1, 0), (4, 2, 1), (4, 3, 2), (4, 4, 3)),
)

PROFILES = {p.name: p for p in (KDL1, KDL2)}


def get_profile(name: str) -> GameProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise UnknownProfileError(f"Unknown game '{name}', expected one of {sorted(PROFILES)}") from None


def _to_int(field_name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Profile field '{field_name}' must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError:
            pass
    raise ValueError(f"Profile field '{field_name}' must be an integer (e.g. 0x511F), got {value!r}")


def _coerce(field_name: str, value: Any) -> Any:
    if field_name in ("name", "title"):
        return str(value)
    if field_name == "layout":
        if value not in LAYOUTS:
            raise ValueError(f"Profile field 'layout' must be one of {LAYOUTS}, got {value!r}")
        return value
    if field_name == "long_counts":
        if not isinstance(value, bool):
            raise ValueError(f"Profile field 'long_counts' must be true/false, got {value!r}")
        return value
    if field_name == "screen_counts":
        if not isinstance(value, list):
            raise ValueError("Profile field 'screen_counts' must be a list")
        return tuple(_to_int(field_name, v) for v in value)
    if field_name == "tileset_overrides":
        if not isinstance(value, list) or any(not isinstance(v, list) or len(v) != 3 for v in value):
            raise ValueError("Profile field 'tileset_overrides' must be a list of [stage, screen, tileset] triples")
        return tuple(tuple(_to_int(field_name, x) for x in v) for v in value)
    return _to_int(field_name, value)


def profile_from_mapping(raw: dict[str, Any]) -> GameProfile:
    if not isinstance(raw, dict):
        raise ValueError("Profile file must contain a mapping")
    raw = dict(raw)
    base_name = raw.pop("base", "kdl2")
    if not isinstance(base_name, str):
        raise ValueError(f"Profile field 'base' must be a game name, got {base_name!r}")
    base = get_profile(base_name)
    known = {f.name for f in fields(GameProfile)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"Unknown profile fields: {sorted(unknown)}")
    return replace(base, **{k: _coerce(k, v) for k, v in raw.items()})


def load_profile(path: str) -> GameProfile:
    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Cannot parse profile file {path}: {e}") from e
    return profile_from_mapping(raw)
