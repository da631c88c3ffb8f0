import logging as log

import click

from . import catalog, mapper, profiles, render, rom_utils
from .errors import RomDataError


def _load_catalog(rom, game, profile_file):
    try:
        profile = profiles.load_profile(profile_file) if profile_file else profiles.get_profile(game)
    except (ValueError, profiles.UnknownProfileError) as e:
        raise click.BadParameter(str(e))
    data = rom_utils.read_rom_bytes(rom)
    try:
        return catalog.parse_catalog(data, profile)
    except RomDataError as e:
        raise click.ClickException(str(e))


game_option = click.option("--game", type=click.Choice(sorted(profiles.PROFILES)), default="kdl2", show_default=True,
                           help="Which cartridge the ROM is")
profile_option = click.option("--profile-file", type=click.Path(exists=True, dir_okay=False), default=None,
                              help="YAML profile overriding the built-in layout for --game")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log decoding progress")
def main(verbose):
    """Kirby's Dream Land level viewer."""
    log.basicConfig(
        level=log.DEBUG if verbose else log.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@main.command()
@click.option("--rom", type=click.Path(exists=True, dir_okay=False), required=True, help="Path to the ROM")
def verify(rom):
    """Print ROM size, CRC32 and header summary."""
    info = rom_utils.inspect_rom(rom_utils.read_rom_bytes(rom))
    click.echo(f"Size: {info['size']} bytes ({info['banks']} banks)")
    click.echo(f"CRC32: {info['crc32']:08X}")
    if info.get("warning"):
        click.echo(f"Warning: {info['warning']}")
    hdr = info.get("header")
    if hdr:
        click.echo("Header:")
        click.echo(f"  Title: {hdr['title']}")
        click.echo(f"  Cart: {hdr['cartridge_type_name']} (0x{hdr['cartridge_type']:02X})")
        if hdr.get("rom_size_expected"):
            click.echo(f"  Declared ROM size: {hdr['rom_size_expected']} bytes (code 0x{hdr['rom_size_code']:02X})")
        click.echo(f"  Header checksum: calc=0x{hdr['header_checksum_calc']:02X}, stored=0x{hdr['header_checksum']:02X}")
        click.echo(f"  Global checksum: calc=0x{hdr['global_checksum_calc']:04X}, stored=0x{hdr['global_checksum']:04X}")
    if info.get("header_error"):
        click.echo(f"Header error: {info['header_error']}")


@main.command()
@click.option("--rom", type=click.Path(exists=True, dir_okay=False), required=True, help="Path to the ROM")
@game_option
@profile_option
def levels(rom, game, profile_file):
    """List every level the ROM holds."""
    cat = _load_catalog(rom, game, profile_file)
    click.echo(f"{cat.profile.title}: {len(cat)} levels")
    for entry in cat:
        if isinstance(entry, catalog.StageScreen):
            click.echo(
                f"  {entry.index:3d}  stage {entry.stage} screen {entry.screen:2d} @ {entry.pointer}  "
                f"{entry.width}x{entry.height} metatiles, tileset {entry.tileset_stage}"
            )
        else:
            click.echo(
                f"  {entry.index:3d}  @ {entry.pointer}  slices {entry.vertical_slices}x{entry.horizontal_slices}  "
                f"VRAM base 0x{entry.assets.vram_base:04X}  chunk {entry.assets.chunk_size}  "
                f"{len(entry.blocks)} metatiles"
            )


@main.command("render")
@click.option("--rom", type=click.Path(exists=True, dir_okay=False), required=True, help="Path to the ROM")
@click.option("--level", "index", type=int, required=True, help="Level index as listed by 'levels'")
@click.option("--out", type=click.Path(dir_okay=False), required=True, help="Output PNG")
@game_option
@profile_option
def render_cmd(rom, index, out, game, profile_file):
    """Render one level to a PNG."""
    cat = _load_catalog(rom, game, profile_file)
    try:
        level_map = mapper.assemble(cat.level(index))
    except RomDataError as e:
        raise click.ClickException(str(e))
    image = render.render_level(level_map)
    image.save(out, format="PNG")
    click.echo(f"Wrote level {index} ({level_map.width}x{level_map.height}) → {out}")


if __name__ == "__main__":
    main()
