"""PSARC archive reader."""

import logging
from dataclasses import replace
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .blocks import BlockDecompressor
from .cipher import decrypt_toc
from .errors import (
    ArchiveClosedError,
    EntryNotFoundError,
    TocDecryptionFailedError,
    TocSizeMismatchError,
)
from .header import HEADER_SIZE, PSARCHeader, parse_header
from .names import build_name_index, normalize_name, resolve_names
from .options import OpenOptions
from .source import ByteSource, Source, as_source
from .stream import EntryStream
from .toc import BlockSizeTable, PSARCEntry, parse_toc

logger = logging.getLogger(__name__)

EntryKey = Union[int, str, PSARCEntry]


class ArchiveState(Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


class PSARCArchive:
    """Reader for PSARC (PlayStation Archive) files.

    ``open()`` parses the header, decrypts the TOC when needed, decodes it
    and resolves entry names. After that the archive is immutable, so reads
    may run from several threads at once. Reads from a plain file object go
    through one lock; pass bytes or use ``memory_map`` to avoid it.

    Entries are addressed by TOC index, by name, or by the entry itself.
    """

    def __init__(self, source: Union[Source, ByteSource], options: Optional[OpenOptions] = None):
        self.source = source
        self.options = options or OpenOptions()
        self.state = ArchiveState.UNOPENED
        self._source: Optional[ByteSource] = None
        self._owns_source = False
        self._header: Optional[PSARCHeader] = None
        self._entries: Tuple[PSARCEntry, ...] = ()
        self._block_table: Optional[BlockSizeTable] = None
        self._decompressor: Optional[BlockDecompressor] = None
        self._name_index: Dict[str, int] = {}

    def __enter__(self) -> "PSARCArchive":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<PSARCArchive {self.state.value} entries={len(self._entries)}>"

    def open(self) -> None:
        """Open the archive and parse headers.

        On failure any source the archive created is released, the archive
        stays unopened and the original error propagates.
        """
        if self.state is ArchiveState.OPEN:
            return
        if self.state is ArchiveState.CLOSED:
            raise ArchiveClosedError("Archive is closed")

        source = as_source(self.source, self.options.memory_map)
        self._owns_source = source is not self.source
        try:
            header, entries, table = self._read_toc(source)
            decompressor = BlockDecompressor(header, table, source)
            if self.options.resolve_names:
                entries = resolve_names(entries, decompressor.read)
        except Exception:
            if self._owns_source:
                source.close()
            raise

        self._source = source
        self._header = header
        self._entries = tuple(entries)
        self._block_table = table
        self._decompressor = decompressor
        self._name_index = build_name_index(self._entries, header.ignore_case)
        self.state = ArchiveState.OPEN
        logger.debug("Opened PSARC archive: %d entries", len(self._entries))

    def _read_toc(self, source: ByteSource) -> Tuple[PSARCHeader, List[PSARCEntry], BlockSizeTable]:
        header = parse_header(source.read_at(0, HEADER_SIZE))

        if header.toc_size < 0:
            raise TocSizeMismatchError(
                f"toc_length {header.toc_length} is smaller than the {HEADER_SIZE}-byte header"
            )
        toc = source.read_at(HEADER_SIZE, header.toc_size)
        if len(toc) < header.toc_size:
            raise TocSizeMismatchError(
                f"TOC declares {header.toc_size} bytes, archive has {len(toc)}"
            )

        encrypted = header.is_toc_encrypted(self.options.encrypted_flag)
        if encrypted:
            logger.debug("Decrypting TOC")
            toc = decrypt_toc(
                toc, header, self.options.decryption_key, self.options.decryption_iv
            )

        try:
            entries, table = parse_toc(toc, header, self.options.strict_block_table)
        except TocSizeMismatchError as e:
            if encrypted:
                raise TocDecryptionFailedError(f"Decrypted TOC is inconsistent: {e}") from e
            raise
        return header, entries, table

    def close(self) -> None:
        """Release the byte source. The archive cannot be reopened.

        A ``ByteSource`` passed in by the caller is left open.
        """
        if self._source is not None and self._owns_source:
            self._source.close()
        self._source = None
        self._decompressor = None
        self.state = ArchiveState.CLOSED

    def _require_open(self) -> BlockDecompressor:
        if self.state is ArchiveState.UNOPENED:
            raise ArchiveClosedError("Archive not opened")
        if self.state is ArchiveState.CLOSED or self._decompressor is None:
            raise ArchiveClosedError("Archive is closed")
        return self._decompressor

    @property
    def is_open(self) -> bool:
        return self.state is ArchiveState.OPEN

    @property
    def header(self) -> PSARCHeader:
        self._require_open()
        return self._header

    @property
    def block_table(self) -> BlockSizeTable:
        self._require_open()
        return self._block_table

    @property
    def entries(self) -> Tuple[PSARCEntry, ...]:
        self._require_open()
        return self._entries

    def list(self) -> Tuple[PSARCEntry, ...]:
        """All entries in TOC order, manifest included."""
        return self.entries

    def names(self) -> List[str]:
        """Names of all named entries, in TOC order."""
        return [entry.name for entry in self.entries if entry.name]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[PSARCEntry]:
        return iter(self.entries)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (int, str, PSARCEntry)):
            return False
        try:
            self.get_entry(key)
        except EntryNotFoundError:
            return False
        return True

    def get_entry(self, key: EntryKey) -> PSARCEntry:
        """Find an entry by index, name (leading ``/`` optional) or entry."""
        entries = self.entries
        if isinstance(key, PSARCEntry):
            key = key.index
        if isinstance(key, int):
            if not 0 <= key < len(entries):
                raise EntryNotFoundError(
                    f"Entry index {key} out of range (archive has {len(entries)} entries)"
                )
            return entries[key]

        index = self._name_index.get(normalize_name(key, self._header.ignore_case))
        if index is None:
            raise EntryNotFoundError(f"No entry named {key!r}")
        return entries[index]

    def read(self, key: EntryKey) -> bytes:
        """Return the full decoded contents of an entry."""
        decompressor = self._require_open()
        return decompressor.read(self.get_entry(key))

    def read_range(self, key: EntryKey, offset: int, length: int) -> bytes:
        """Return up to ``length`` decoded bytes of an entry from ``offset``.

        Only the blocks covering the range are decoded.
        """
        decompressor = self._require_open()
        return decompressor.read(self.get_entry(key), offset, length)

    def open_entry(self, key: EntryKey) -> EntryStream:
        """Return a seekable read-only stream over an entry."""
        decompressor = self._require_open()
        return EntryStream(self.get_entry(key), decompressor.block_size, self._decode_block)

    def _decode_block(self, entry: PSARCEntry, position: int) -> bytes:
        return self._require_open().decode_block(entry, position)


def open_archive(
    source: Union[Source, ByteSource], options: Optional[OpenOptions] = None, **overrides
) -> PSARCArchive:
    """Open a PSARC archive from a path, bytes-like object or binary file.

    Keyword arguments override fields of ``options``, e.g.
    ``open_archive(path, decryption_key=key)``.
    """
    options = options or OpenOptions()
    if overrides:
        options = replace(options, **overrides)
    archive = PSARCArchive(source, options)
    archive.open()
    return archive
