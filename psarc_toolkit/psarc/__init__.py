"""PSARC archive reading."""

from .errors import (
    ArchiveClosedError,
    DecompressionFailureError,
    EntryNotFoundError,
    InvalidMagicError,
    PSARCError,
    PSARCFormatError,
    TocDecryptionFailedError,
    TocSizeMismatchError,
    TruncatedBlockDataError,
    TruncatedHeaderError,
    UnsupportedCompressionError,
    UnsupportedVersionError,
)
from .header import PSARCHeader, parse_header
from .options import OpenOptions
from .reader import ArchiveState, PSARCArchive, open_archive
from .stream import EntryStream
from .toc import BlockSizeTable, PSARCEntry

__all__ = [
    "ArchiveClosedError",
    "ArchiveState",
    "BlockSizeTable",
    "DecompressionFailureError",
    "EntryNotFoundError",
    "EntryStream",
    "InvalidMagicError",
    "OpenOptions",
    "PSARCArchive",
    "PSARCEntry",
    "PSARCError",
    "PSARCFormatError",
    "PSARCHeader",
    "TocDecryptionFailedError",
    "TocSizeMismatchError",
    "TruncatedBlockDataError",
    "TruncatedHeaderError",
    "UnsupportedCompressionError",
    "UnsupportedVersionError",
    "open_archive",
    "parse_header",
]
