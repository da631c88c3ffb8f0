import zlib
from pathlib import Path

from .errors import EmptyInputError, OutOfRangeError

BANK_SIZE = 0x4000

# Common ROM sizes for quick sanity; not authoritative
EXPECTED_SIZES = {0x20000, 0x40000, 0x80000}

CARTRIDGE_TYPES = {
    0x00: "ROM ONLY",
    0x01: "MBC1",
    0x02: "MBC1+RAM",
    0x03: "MBC1+RAM+BATTERY",
    0x05: "MBC2",
    0x06: "MBC2+BATTERY",
    0x11: "MBC3",
    0x13: "MBC3+RAM+BATTERY",
    0x19: "MBC5",
    0x1B: "MBC5+RAM+BATTERY",
}

ROM_SIZE_TABLE = {
    0x00: 32 * 1024,
    0x01: 64 * 1024,
    0x02: 128 * 1024,
    0x03: 256 * 1024,
    0x04: 512 * 1024,
    0x05: 1 * 1024 * 1024,
}


def linear_address(offset: int, bank: int) -> int:
    """Translate a banked (offset, bank) pair into a flat ROM position.

    Only the low 14 bits of ``offset`` select a byte inside the bank, so the
    same result comes out whether the pointer was stored as 0x4xxx-0x7xxx
    (switchable window) or as a raw bank offset.
    """
    return bank * BANK_SIZE + (offset & 0x3FFF)


def mapped_address(offset: int, bank: int) -> int:
    """Flat ROM position of a CPU address read with ``bank`` switched in.

    Addresses below 0x4000 sit in the fixed home bank, so the stored bank
    number does not apply to them.
    """
    if offset < BANK_SIZE:
        return offset
    return linear_address(offset, bank)


def read_rom_bytes(path: str | Path) -> bytes:
    return Path(path).read_bytes()


def require_rom(data: bytes) -> bytes:
    if not data:
        raise EmptyInputError("No cartridge data supplied")
    return bytes(data)


def read_u8(data: bytes, pos: int) -> int:
    if not 0 <= pos < len(data):
        raise OutOfRangeError(f"Read at 0x{pos:06X} is outside the ROM (size 0x{len(data):06X})", pos)
    return data[pos]


def read_block(data: bytes, pos: int, length: int) -> bytes:
    if pos < 0 or pos + length > len(data):
        raise OutOfRangeError(
            f"Read of {length} bytes at 0x{pos:06X} is outside the ROM (size 0x{len(data):06X})", pos
        )
    return data[pos:pos + length]


def crc32(data: bytes) -> int:
    return zlib.crc32(data) & 0xFFFFFFFF


def _header_checksum(data: bytes) -> int:
    x = 0
    for i in range(0x0134, 0x014D):
        x = (x - data[i] - 1) & 0xFF
    return x


def _global_checksum(data: bytes) -> int:
    # 16-bit sum over every byte except the two checksum bytes themselves
    return (sum(data) - data[0x014E] - data[0x014F]) & 0xFFFF


def parse_header(data: bytes) -> dict:
    if len(data) < 0x150:
        raise ValueError("ROM too small to contain a valid header")
    title_raw = data[0x0134:0x0144]
    title = bytes(b for b in title_raw if 32 <= b <= 126).decode("ascii", errors="ignore").strip()
    cart_type = data[0x0147]
    rom_size_code = data[0x0148]

    return {
        "title": title or "(unknown)",
        "cartridge_type": cart_type,
        "cartridge_type_name": CARTRIDGE_TYPES.get(cart_type, f"Unknown(0x{cart_type:02X})"),
        "rom_size_code": rom_size_code,
        "rom_size_expected": ROM_SIZE_TABLE.get(rom_size_code),
        "version": data[0x014C],
        "header_checksum": data[0x014D],
        "header_checksum_calc": _header_checksum(data),
        "global_checksum": int.from_bytes(data[0x014E:0x0150], "big"),
        "global_checksum_calc": _global_checksum(data),
    }


def inspect_rom(data: bytes) -> dict:
    size = len(data)
    info = {"size": size, "crc32": crc32(data), "banks": (size + BANK_SIZE - 1) // BANK_SIZE}
    if size not in EXPECTED_SIZES:
        info["warning"] = "Unexpected ROM size. Confirm banking layout."
    try:
        header = parse_header(data)
        info["header"] = header
        if header["header_checksum"] != header["header_checksum_calc"]:
            info["header_warning"] = "Header checksum mismatch"
    except ValueError as e:
        info["header_error"] = str(e)
    return info
