"""File-like access to a single archive entry."""

import io
from typing import Callable, Optional, Tuple

from .toc import PSARCEntry


class EntryStream(io.RawIOBase):
    """Read-only, seekable stream over one entry's decoded bytes.

    Reads decode whole blocks on demand. The most recent block is kept so
    that small sequential reads decode each block once.
    """

    def __init__(
        self,
        entry: PSARCEntry,
        block_size: int,
        decode_block: Callable[[PSARCEntry, int], bytes],
    ):
        super().__init__()
        self.entry = entry
        self._block_size = block_size
        self._decode_block = decode_block
        self._position = 0
        self._cached: Optional[Tuple[int, bytes]] = None

    @property
    def name(self) -> str:
        return self.entry.name or f"#{self.entry.index}"

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        self._checkClosed()
        return self._position

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self._checkClosed()
        if whence == io.SEEK_SET:
            position = offset
        elif whence == io.SEEK_CUR:
            position = self._position + offset
        elif whence == io.SEEK_END:
            position = self.entry.uncompressed_size + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if position < 0:
            raise ValueError(f"Negative seek position: {position}")
        self._position = position
        return position

    def _block(self, position: int) -> bytes:
        if self._cached is None or self._cached[0] != position:
            self._cached = (position, self._decode_block(self.entry, position))
        return self._cached[1]

    def readinto(self, buffer) -> int:
        self._checkClosed()
        view = memoryview(buffer).cast("B")
        if not len(view) or self._position >= self.entry.uncompressed_size:
            return 0

        block_position, start = divmod(self._position, self._block_size)
        chunk = self._block(block_position)[start : start + len(view)]
        view[: len(chunk)] = chunk
        self._position += len(chunk)
        return len(chunk)

    def readall(self) -> bytes:
        parts = []
        while True:
            chunk = self.read(self._block_size)
            if not chunk:
                break
            parts.append(chunk)
        return b"".join(parts)

    def close(self) -> None:
        self._cached = None
        super().close()
