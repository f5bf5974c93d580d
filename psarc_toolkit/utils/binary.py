"""Binary reading utilities for big-endian PSARC data."""

import struct
from io import BytesIO
from typing import Union


class BinaryReader:
    """Helper for reading big-endian binary data."""

    def __init__(self, data: Union[bytes, bytearray, memoryview]):
        self._stream = BytesIO(data)

    def read_bytes(self, size: int) -> bytes:
        data = self._stream.read(size)
        if len(data) < size:
            raise EOFError(f"Expected {size} bytes, got {len(data)}")
        return data

    def read_u16(self) -> int:
        return struct.unpack(">H", self.read_bytes(2))[0]

    def read_u32(self) -> int:
        return struct.unpack(">I", self.read_bytes(4))[0]

    def read_uint(self, width: int) -> int:
        """Read a ``width``-byte unsigned integer, big-endian.

        PSARC packs lengths and offsets into 40-bit fields and sizes the
        block table cells to the archive's block size, so widths other
        than 1, 2, 4 and 8 are common.
        """
        data = self.read_bytes(width)
        return int.from_bytes(data, byteorder="big", signed=False)


def uint_width(value: int) -> int:
    """Return the number of bytes needed to hold values below ``value``."""
    width = 1
    while (1 << (8 * width)) < value:
        width += 1
    return width
