"""Lookup table the games build at boot for the table-indexed copy opcode."""

from functools import lru_cache


@lru_cache(maxsize=None)
def procedural_table() -> bytes:
    """
    Replay the CPU loop that fills the 256-byte table.

    Per entry the loop runs eight rounds of::

        rrc l    ; rotate L right, bit 0 -> carry and bit 7
        rla      ; rotate A left through carry

    then stores A, increments L and A, and stops once A wraps to 0.
    """
    table = bytearray()
    a = 0x07
    r = 0

    while a != 0:
        for _ in range(8):
            # rrc l
            carry = r & 0x01
            r = (carry << 7) | (r >> 1)
            # rla
            a = (a << 1) | carry
            carry = (a >> 8) & 0x01
            a &= 0xFF

        table.append(a)
        r = (r + 1) & 0xFF
        a = (a + 1) & 0xFF

    return bytes(table)
