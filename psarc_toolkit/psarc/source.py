"""Positioned-read byte sources backing an open archive.

Buffers and memory maps are read by slicing, which needs no shared state, so
any number of threads can read at once. A plain file object has a single
cursor; ``FileSource`` serializes seek+read behind a lock.
"""

import mmap
import os
import threading
from pathlib import Path
from typing import BinaryIO, Optional, Union

Source = Union[str, os.PathLike, bytes, bytearray, memoryview, mmap.mmap, BinaryIO]


class ByteSource:
    """Random-access, read-only view of archive bytes."""

    size: int = 0

    def read_at(self, offset: int, size: int) -> bytes:
        """Read up to ``size`` bytes at ``offset``; short only at end of data."""
        raise NotImplementedError

    def close(self) -> None:
        pass


class BufferSource(ByteSource):
    """In-memory bytes, bytearray, memoryview or mmap."""

    def __init__(self, buffer: Union[bytes, bytearray, memoryview, mmap.mmap]):
        self._buffer = buffer
        self.size = len(buffer)

    def read_at(self, offset: int, size: int) -> bytes:
        return bytes(self._buffer[offset : offset + size])

    def close(self) -> None:
        self._buffer = b""


class MmapSource(BufferSource):
    """Memory-mapped archive file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._file = open(self.path, "rb")
        try:
            mapped = mmap.mmap(self._file.fileno(), 0, access=mmap.ACCESS_READ)
        except (OSError, ValueError):
            self._file.close()
            raise
        super().__init__(mapped)

    def close(self) -> None:
        buffer = self._buffer
        super().close()
        if isinstance(buffer, mmap.mmap):
            buffer.close()
        self._file.close()


class FileSource(ByteSource):
    """Binary file object shared by all readers."""

    def __init__(self, file: BinaryIO, path: Optional[Path] = None, owns_file: bool = False):
        self.path = path
        self._file = file
        self._owns_file = owns_file
        self._lock = threading.Lock()
        with self._lock:
            self.size = file.seek(0, os.SEEK_END)

    @classmethod
    def from_path(cls, path: Path) -> "FileSource":
        return cls(open(path, "rb"), path=Path(path), owns_file=True)

    def read_at(self, offset: int, size: int) -> bytes:
        with self._lock:
            self._file.seek(offset)
            return self._file.read(size)

    def close(self) -> None:
        if self._owns_file:
            self._file.close()


def as_source(source: Union[Source, ByteSource], memory_map: bool = False) -> ByteSource:
    """Wrap a path, bytes-like object or binary file in a ByteSource.

    Paths are memory-mapped when ``memory_map`` is set (and the file is not
    empty), otherwise opened as a shared file.
    """
    if isinstance(source, ByteSource):
        return source
    if isinstance(source, (bytes, bytearray, memoryview, mmap.mmap)):
        return BufferSource(source)
    if isinstance(source, (str, os.PathLike)):
        path = Path(source)
        if memory_map and path.stat().st_size > 0:
            return MmapSource(path)
        return FileSource.from_path(path)
    if hasattr(source, "read") and hasattr(source, "seek"):
        return FileSource(source)
    raise TypeError(f"Unsupported PSARC source: {type(source).__name__}")
