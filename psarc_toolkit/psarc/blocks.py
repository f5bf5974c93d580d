"""Block-level decoding of entry data.

Every entry is cut into ``block_size`` chunks that are compressed
independently, so any byte range can be served by decoding only the blocks
that cover it. Rules for a block, in order:

- a block table cell of 0 means the block occupies ``block_size`` bytes
- a block whose on-disk length equals its decoded length is stored raw
- a final, short block occupying a full ``block_size`` on disk is stored raw
  and padded; only its leading bytes belong to the entry
- anything else goes through the archive's codec
"""

from typing import Iterator, Optional

from .compression import get_codec
from .errors import TruncatedBlockDataError
from .header import PSARCHeader
from .source import ByteSource
from .toc import BlockSizeTable, PSARCEntry


class BlockDecompressor:
    """Decode an entry's blocks from the data section."""

    def __init__(self, header: PSARCHeader, table: BlockSizeTable, source: ByteSource):
        self.block_size = header.block_size
        self._codec = get_codec(header.compression)
        self._table = table
        self._source = source

    def expected_size(self, entry: PSARCEntry, position: int) -> int:
        """Decoded size of the entry's ``position``-th block."""
        return min(self.block_size, entry.uncompressed_size - position * self.block_size)

    def decode_block(self, entry: PSARCEntry, position: int) -> bytes:
        """Read and decode block ``position`` (0-based, within the entry)."""
        if not 0 <= position < entry.block_count:
            raise IndexError(
                f"Block {position} out of range for entry {entry.index} "
                f"({entry.block_count} blocks)"
            )

        index = entry.block_index + position
        compressed_size = self._table.compressed_size(index)
        offset = entry.file_offset + self._table.relative_offset(entry.block_index, index)

        block = self._source.read_at(offset, compressed_size)
        if len(block) < compressed_size:
            raise TruncatedBlockDataError(
                f"Entry {entry.index} block {position}: expected {compressed_size} "
                f"bytes at offset {offset}, got {len(block)}"
            )

        expected = self.expected_size(entry, position)
        if compressed_size == expected:
            return block
        if compressed_size == self.block_size and expected < self.block_size:
            return block[:expected]
        return self._codec.decompress(block, expected)

    def iter_blocks(
        self, entry: PSARCEntry, first: int = 0, stop: Optional[int] = None
    ) -> Iterator[bytes]:
        """Yield decoded blocks ``first`` up to ``stop`` of an entry."""
        if stop is None:
            stop = entry.block_count
        for position in range(first, stop):
            yield self.decode_block(entry, position)

    def read(self, entry: PSARCEntry, offset: int = 0, size: Optional[int] = None) -> bytes:
        """Return ``size`` decoded bytes of ``entry`` starting at ``offset``.

        The range is clipped to the entry like a file read. Decoding starts
        at the block containing ``offset``, not at the start of the entry.
        """
        if offset < 0:
            raise ValueError(f"Negative offset: {offset}")
        if size is not None and size < 0:
            raise ValueError(f"Negative size: {size}")

        end = entry.uncompressed_size
        if size is not None:
            end = min(end, offset + size)
        if offset >= end:
            return b""

        first = offset // self.block_size
        stop = (end - 1) // self.block_size + 1
        data = b"".join(self.iter_blocks(entry, first, stop))

        start = offset - first * self.block_size
        return data[start : start + end - offset]
