"""64-bit cyclic redundancy check as specified in ECMA-182 (reflected form)."""

from __future__ import annotations

_POLY = 0xC96C5795D7870F42
_MASK = 0xFFFFFFFFFFFFFFFF


def _build_table() -> tuple[int, ...]:
    table = []
    for value in range(256):
        for _ in range(8):
            value = (_POLY if value & 1 else 0) ^ (value >> 1)
        table.append(value)
    return tuple(table)


_TABLE = _build_table()


def crc64(data: bytes | bytearray | memoryview, crc: int = 0) -> int:
    """Return the CRC-64 of ``data``, continuing from a previous ``crc``.

    Feeding the result of one call as ``crc`` to the next gives the same
    value as one call over the concatenated data.
    """
    value = ~crc & _MASK
    for byte in bytes(data):
        value = _TABLE[(value ^ byte) & 0xFF] ^ (value >> 8)
    return ~value & _MASK