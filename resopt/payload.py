"""
resopt/payload.py

Codec for the fill-array-data payload block.

Layout (all little-endian):
- ident          u2   0x0300, marks the block as array data
- element_width  u2   bytes per element (always 4 here)
- size           u4   number of elements
- data           size * element_width bytes
- padding        zero bytes up to a whole number of 16-bit code units
"""

from __future__ import annotations

import struct
from typing import Iterable

from resopt.errors import MalformedPayload


FILL_ARRAY_DATA_IDENT = 0x0300
ELEMENT_WIDTH = 4
HEADER = struct.Struct('<HHI')
CODE_UNIT = 2


def decode(raw: bytes) -> list[int]:
    """
    Decode a payload block into its 32-bit element values.

    Raises:
        MalformedPayload: bad ident, width other than 4, or data shorter
            than the declared element count.
    """
    if not isinstance(raw, (bytes, bytearray, memoryview)):
        raise MalformedPayload(
            f"payload must be bytes, got {type(raw).__name__}"
        )
    raw = bytes(raw)
    if len(raw) < HEADER.size:
        raise MalformedPayload(
            f"payload too short for header: {len(raw)} bytes"
        )

    ident, width, count = HEADER.unpack_from(raw, 0)
    if ident != FILL_ARRAY_DATA_IDENT:
        raise MalformedPayload(f"not an array payload (ident {ident:#06x})")
    if width != ELEMENT_WIDTH:
        raise MalformedPayload(
            f"unsupported element width {width}, only int arrays are handled"
        )

    available = len(raw) - HEADER.size
    needed = count * width
    if needed > available:
        raise MalformedPayload(
            f"payload declares {count} elements ({needed} bytes) "
            f"but only {available} bytes follow the header"
        )

    return list(struct.unpack_from(f'<{count}I', raw, HEADER.size))


def encode(values: Iterable[int]) -> bytes:
    """Encode 32-bit values into a zero-padded payload block."""
    values = [int(v) for v in values]
    for v in values:
        if not 0 <= v <= 0xFFFFFFFF:
            raise ValueError(f"array element out of 32-bit range: {v:#x}")

    body = HEADER.pack(FILL_ARRAY_DATA_IDENT, ELEMENT_WIDTH, len(values))
    body += struct.pack(f'<{len(values)}I', *values)
    # Pad to a whole code unit
    if len(body) % CODE_UNIT:
        body += b'\x00' * (CODE_UNIT - len(body) % CODE_UNIT)
    return body

