"""Decoder for the run-length/back-reference format both games store graphics in.

Each command starts with one byte: the top three bits pick the command and
the low five bits hold ``count - 1``. A top-three-bits value of 0b111 marks
an extended command: the real command sits in bits 2-4 and the count comes
from the following byte. 0xFF ends the stream.

Commands that copy from earlier output take a big-endian 16-bit index into
the output produced so far. The copy may run into bytes it is producing
itself, which is how long repeating patterns are encoded.
"""

import logging as log
from dataclasses import dataclass
from enum import IntEnum

from .errors import OutOfRangeError, TruncatedStreamError
from .procedural import procedural_table

END_OF_STREAM = 0xFF
EXTENDED = 0xE0


class Opcode(IntEnum):
    LITERAL = 0x00
    REPEAT_BYTE = 0x20
    REPEAT_PAIR = 0x40
    INCREMENT = 0x60
    COPY_FORWARD = 0x80
    COPY_TABLE = 0xA0
    COPY_BACKWARD = 0xC0

    @classmethod
    def from_tag(cls, tag: int) -> "Opcode":
        # 0xE0 can come back out of an extended command; it decodes as a literal run
        try:
            return cls(tag)
        except ValueError:
            return cls.LITERAL


@dataclass(frozen=True)
class DecodeResult:
    data: bytes
    end: int


class _Reader:
    def __init__(self, source: bytes, pos: int):
        self.source = source
        self.pos = pos

    def byte(self) -> int:
        if not 0 <= self.pos < len(self.source):
            raise TruncatedStreamError(
                f"Compressed stream ran past the end of the source at 0x{self.pos:06X}", self.pos
            )
        value = self.source[self.pos]
        self.pos += 1
        return value

    def address(self) -> int:
        hi = self.byte()
        lo = self.byte()
        return (hi << 8) | lo


def _fetch(out: bytearray, index: int) -> int:
    if not 0 <= index < len(out):
        raise OutOfRangeError(
            f"Back-reference to index 0x{index:04X} but only 0x{len(out):04X} bytes decoded", index
        )
    return out[index]


def _literal(reader: _Reader, out: bytearray, n: int) -> None:
    for _ in range(n):
        out.append(reader.byte())


def _repeat_byte(reader: _Reader, out: bytearray, n: int) -> None:
    out.extend([reader.byte()] * n)


def _repeat_pair(reader: _Reader, out: bytearray, n: int) -> None:
    b1 = reader.byte()
    b2 = reader.byte()
    out.extend([b1, b2] * n)


def _increment(reader: _Reader, out: bytearray, n: int) -> None:
    seed = reader.byte()
    for i in range(n):
        out.append((seed + i) & 0xFF)


def _copy_forward(reader: _Reader, out: bytearray, n: int) -> None:
    start = reader.address()
    for i in range(n):
        out.append(_fetch(out, start + i))


def _copy_table(reader: _Reader, out: bytearray, n: int) -> None:
    table = procedural_table()
    start = reader.address()
    for i in range(n):
        out.append(table[_fetch(out, start + i)])


def _copy_backward(reader: _Reader, out: bytearray, n: int) -> None:
    start = reader.address()
    for i in range(n):
        out.append(_fetch(out, start - i))


_HANDLERS = {
    Opcode.LITERAL: _literal,
    Opcode.REPEAT_BYTE: _repeat_byte,
    Opcode.REPEAT_PAIR: _repeat_pair,
    Opcode.INCREMENT: _increment,
    Opcode.COPY_FORWARD: _copy_forward,
    Opcode.COPY_TABLE: _copy_table,
    Opcode.COPY_BACKWARD: _copy_backward,
}


def decode_stream(source: bytes, start: int, *, long_counts: bool = False) -> DecodeResult:
    """Decode one stream beginning at ``start``.

    Args:
        source: the whole ROM (or any byte buffer holding the stream)
        start: position of the first command byte
        long_counts: extended commands carry a 10-bit count, using the two
            low bits of the command byte as bits 8-9 (first game only)

    Returns:
        DecodeResult with the decoded bytes and the position just past the
        terminating 0xFF.

    Raises:
        TruncatedStreamError: the source ended before 0xFF
        OutOfRangeError: a copy command referenced undecoded output
    """
    reader = _Reader(source, start)
    out = bytearray()

    while True:
        command = reader.byte()
        if command == END_OF_STREAM:
            break

        tag = command & 0xE0
        count = command & 0x1F
        if tag == EXTENDED:
            tag = (command << 3) & 0xE0
            count = reader.byte()
            if long_counts:
                count |= (command & 0x03) << 8

        _HANDLERS[Opcode.from_tag(tag)](reader, out, count + 1)

    log.debug(f"Decoded stream 0x{start:06X}-0x{reader.pos:06X}: {len(out)} bytes")
    return DecodeResult(bytes(out), reader.pos)


def decompress(source: bytes, start: int, *, long_counts: bool = False) -> bytes:
    return decode_stream(source, start, long_counts=long_counts).data
