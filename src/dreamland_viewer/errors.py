"""Errors raised while decoding cartridge data.

All of them derive from ``RomDataError`` (a ``ValueError``) so callers can
catch every decode failure in one place while still telling them apart.
A failure inside one catalog entry keeps its own type; the entry's index is
stored on ``level`` and prefixed to the message.
"""

from typing import Optional


class RomDataError(ValueError):
    level: Optional[int] = None

    def __str__(self) -> str:
        message = super().__str__()
        if self.level is None:
            return message
        return f"Level {self.level}: {message}"


class EmptyInputError(RomDataError):
    """No cartridge bytes were supplied."""


class TruncatedStreamError(RomDataError):
    """The source ran out before a stream terminator was read."""

    def __init__(self, message: str, position: int):
        super().__init__(message)
        self.position = position


class OutOfRangeError(RomDataError, IndexError):
    """A ROM read or self-copy index landed outside the available bytes."""

    def __init__(self, message: str, position: int):
        super().__init__(message)
        self.position = position


class UnknownLevelIndexError(RomDataError, IndexError):
    def __init__(self, index: int, count: int):
        super().__init__(f"Level {index} does not exist (catalog has {count} levels)")
        self.index = index
        self.count = count
