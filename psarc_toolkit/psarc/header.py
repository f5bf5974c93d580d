"""PSARC header structure and parser."""

import logging
from dataclasses import dataclass
from typing import Tuple

from ..utils.binary import BinaryReader, uint_width
from .compression import CompressionType
from .errors import (
    InvalidMagicError,
    PSARCFormatError,
    TruncatedHeaderError,
    UnsupportedVersionError,
)

logger = logging.getLogger(__name__)

# PSARC magic bytes
PSARC_MAGIC = b"PSAR"
HEADER_SIZE = 32

SUPPORTED_VERSIONS = ((1, 3), (1, 4))

# Archive flags
ARCHIVE_FLAG_IGNORE_CASE = 0x01
ARCHIVE_FLAG_TOC_ENCRYPTED = 0x04


@dataclass(frozen=True)
class PSARCHeader:
    """PSARC archive header (32 bytes)."""

    magic: bytes  # 4 bytes: "PSAR"
    version_major: int  # 2 bytes
    version_minor: int  # 2 bytes
    compression_type: bytes  # 4 bytes: "zlib" or "lzma"
    toc_length: int  # 4 bytes: Total TOC size including header
    toc_entry_size: int  # 4 bytes: Size of each TOC entry (30 bytes)
    toc_entry_count: int  # 4 bytes: Number of entries, manifest included
    block_size: int  # 4 bytes: Block size for compression (65536 typical)
    archive_flags: int  # 4 bytes: Flags (ignore case, absolute paths, encrypted)

    @property
    def version(self) -> Tuple[int, int]:
        return (self.version_major, self.version_minor)

    @property
    def compression(self) -> CompressionType:
        return CompressionType.from_tag(self.compression_type)

    @property
    def toc_size(self) -> int:
        """Size of the TOC body that follows the header."""
        return self.toc_length - HEADER_SIZE

    @property
    def block_table_width(self) -> int:
        """Width of one block table cell.

        Cells never need to hold ``block_size`` itself since a full-size
        block is written as 0.
        """
        return uint_width(self.block_size)

    @property
    def ignore_case(self) -> bool:
        return bool(self.archive_flags & ARCHIVE_FLAG_IGNORE_CASE)

    def is_toc_encrypted(self, flag: int = ARCHIVE_FLAG_TOC_ENCRYPTED) -> bool:
        return bool(self.archive_flags & flag)


def parse_header(data: bytes) -> PSARCHeader:
    """Parse the 32-byte PSARC header.

    The magic is checked before anything else is decoded.
    """
    reader = BinaryReader(data)

    try:
        magic = reader.read_bytes(4)
    except EOFError as e:
        raise TruncatedHeaderError(f"PSARC header truncated: {e}") from e
    if magic != PSARC_MAGIC:
        raise InvalidMagicError(f"Invalid PSARC magic: {magic!r}, expected {PSARC_MAGIC!r}")

    try:
        version_major = reader.read_u16()
        version_minor = reader.read_u16()
        compression_type = reader.read_bytes(4)
        toc_length = reader.read_u32()
        toc_entry_size = reader.read_u32()
        toc_entry_count = reader.read_u32()
        block_size = reader.read_u32()
        archive_flags = reader.read_u32()
    except EOFError as e:
        raise TruncatedHeaderError(f"PSARC header truncated: {e}") from e

    if (version_major, version_minor) not in SUPPORTED_VERSIONS:
        raise UnsupportedVersionError(
            f"Unsupported PSARC version: {version_major}.{version_minor}"
        )

    header = PSARCHeader(
        magic=magic,
        version_major=version_major,
        version_minor=version_minor,
        compression_type=compression_type,
        toc_length=toc_length,
        toc_entry_size=toc_entry_size,
        toc_entry_count=toc_entry_count,
        block_size=block_size,
        archive_flags=archive_flags,
    )

    # Validates the tag
    compression = header.compression

    if block_size == 0:
        raise PSARCFormatError("Invalid block_size: 0")

    logger.debug(
        "PSARC header: version=%d.%d compression=%s toc_length=%d entry_size=%d "
        "entries=%d block_size=%d flags=0x%x",
        version_major,
        version_minor,
        compression.value,
        toc_length,
        toc_entry_size,
        toc_entry_count,
        block_size,
        archive_flags,
    )
    return header
