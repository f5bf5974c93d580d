"""PSARC table of contents: entry records and the shared block size table."""

import logging
import struct
from dataclasses import dataclass
from itertools import accumulate
from typing import Iterator, List, Optional, Sequence, Tuple

from ..utils.binary import BinaryReader
from .errors import TocSizeMismatchError
from .header import PSARCHeader

logger = logging.getLogger(__name__)

DIGEST_SIZE = 16
# Name digest plus the 4-byte first block index
RECORD_FIXED_SIZE = DIGEST_SIZE + 4
MAX_FIELD_WIDTH = 8

_CELL_FORMATS = {1: "B", 2: "H", 4: "I"}


@dataclass(frozen=True)
class PSARCEntry:
    """One entry of the table of contents."""

    index: int  # Position in the TOC, never re-sorted
    name_digest: bytes  # 16 bytes: MD5 of the path, opaque here
    block_index: int  # First cell of this entry in the block size table
    block_count: int  # Number of cells the entry owns
    uncompressed_size: int  # Original length (40-bit on disk)
    file_offset: int  # Offset of the first block from the start of the archive

    # Resolved from the manifest
    name: Optional[str] = None

    @property
    def length(self) -> int:
        return self.uncompressed_size

    @property
    def block_range(self) -> range:
        return range(self.block_index, self.block_index + self.block_count)

    @property
    def is_manifest(self) -> bool:
        return self.index == 0


class BlockSizeTable:
    """Compressed block lengths shared by every entry.

    Entries address a contiguous slice through ``PSARCEntry.block_range``.
    A stored cell of 0 stands for a block of exactly ``block_size`` bytes.
    """

    def __init__(self, cells: Sequence[int], block_size: int):
        self._cells = tuple(cells)
        self.block_size = block_size
        self._offsets = (0,) + tuple(
            accumulate(cell or block_size for cell in self._cells)
        )

    def __len__(self) -> int:
        return len(self._cells)

    @property
    def cells(self) -> Tuple[int, ...]:
        """Raw cell values, sentinels included."""
        return self._cells

    def compressed_size(self, index: int) -> int:
        """Compressed length of block ``index`` with the 0 sentinel resolved."""
        return self._cells[index] or self.block_size

    def relative_offset(self, first: int, index: int) -> int:
        """Byte distance from the start of block ``first`` to block ``index``."""
        return self._offsets[index] - self._offsets[first]


def block_count(length: int, block_size: int) -> int:
    """Number of blocks an entry of ``length`` bytes is split into."""
    return (length + block_size - 1) // block_size


def record_field_width(header: PSARCHeader) -> int:
    """Width of the length and offset fields of a TOC record (5 for 30-byte records)."""
    width, remainder = divmod(header.toc_entry_size - RECORD_FIXED_SIZE, 2)
    if remainder or not 1 <= width <= MAX_FIELD_WIDTH:
        raise TocSizeMismatchError(
            f"Invalid toc_entry_size: {header.toc_entry_size} "
            f"(expected {RECORD_FIXED_SIZE} + 2 * width, width 1..{MAX_FIELD_WIDTH})"
        )
    return width


def records_size(header: PSARCHeader) -> int:
    return header.toc_entry_count * header.toc_entry_size


def iter_records(toc: bytes, header: PSARCHeader) -> Iterator[Tuple[bytes, int, int, int]]:
    """Yield (digest, block_index, uncompressed_size, file_offset) per record."""
    width = record_field_width(header)
    expected = records_size(header)
    if expected > len(toc):
        raise TocSizeMismatchError(
            f"TOC records need {expected} bytes "
            f"({header.toc_entry_count} x {header.toc_entry_size}), TOC has {len(toc)}"
        )

    reader = BinaryReader(toc)
    for _ in range(header.toc_entry_count):
        name_digest = reader.read_bytes(DIGEST_SIZE)
        block_index = reader.read_u32()
        uncompressed_size = reader.read_uint(width)
        file_offset = reader.read_uint(width)
        yield name_digest, block_index, uncompressed_size, file_offset


def read_block_table(data: bytes, header: PSARCHeader, strict: bool = True) -> BlockSizeTable:
    """Decode the block size table that follows the TOC records."""
    width = header.block_table_width
    count, remainder = divmod(len(data), width)
    if remainder:
        if strict:
            raise TocSizeMismatchError(
                f"Block table length {len(data)} is not a multiple of the "
                f"{width}-byte cell width"
            )
        logger.debug("Ignoring %d trailing block table bytes", remainder)
        data = data[: count * width]

    fmt = _CELL_FORMATS.get(width)
    if fmt:
        cells = struct.unpack(f">{count}{fmt}", data)
    else:
        reader = BinaryReader(data)
        cells = [reader.read_uint(width) for _ in range(count)]
    return BlockSizeTable(cells, header.block_size)


def parse_toc(
    toc: bytes, header: PSARCHeader, strict: bool = True
) -> Tuple[List[PSARCEntry], BlockSizeTable]:
    """Decode plaintext TOC bytes into entries and the block size table.

    ``strict`` requires the entries to consume every cell of the table.
    Otherwise surplus cells are tolerated, as long as each entry's own
    range is present.
    """
    entries = []
    for index, (name_digest, block_index, uncompressed_size, file_offset) in enumerate(
        iter_records(toc, header)
    ):
        entries.append(
            PSARCEntry(
                index=index,
                name_digest=name_digest,
                block_index=block_index,
                block_count=block_count(uncompressed_size, header.block_size),
                uncompressed_size=uncompressed_size,
                file_offset=file_offset,
            )
        )

    table = read_block_table(toc[records_size(header) :], header, strict)

    for entry in entries:
        if entry.block_range.stop > len(table):
            raise TocSizeMismatchError(
                f"Entry {entry.index} needs blocks {entry.block_range.start}.."
                f"{entry.block_range.stop - 1}, block table has {len(table)}"
            )

    needed = sum(entry.block_count for entry in entries)
    if needed != len(table):
        if strict or needed > len(table):
            raise TocSizeMismatchError(
                f"Entries use {needed} blocks, block table has {len(table)}"
            )
        logger.debug("Block table has %d cells not owned by any entry", len(table) - needed)

    logger.debug("Parsed %d TOC entries, %d blocks", len(entries), len(table))
    return entries, table
