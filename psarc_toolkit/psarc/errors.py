"""Exceptions raised while opening and reading PSARC archives."""


class PSARCError(Exception):
    """Base class for PSARC errors."""


class PSARCFormatError(PSARCError, ValueError):
    """The archive bytes do not match the PSARC layout."""


# Header
class InvalidMagicError(PSARCFormatError):
    pass


class UnsupportedVersionError(PSARCFormatError):
    pass


class UnsupportedCompressionError(PSARCFormatError):
    pass


class TruncatedHeaderError(PSARCFormatError):
    pass


# Table of contents
class TocDecryptionFailedError(PSARCFormatError):
    """Decrypted TOC is not self-consistent (wrong key or IV, or corrupt data)."""


class TocSizeMismatchError(PSARCFormatError):
    pass


# Entry data
class TruncatedBlockDataError(PSARCFormatError):
    pass


class DecompressionFailureError(PSARCFormatError):
    pass


# Facade
class EntryNotFoundError(PSARCError, KeyError):
    """Raised when an index or name does not match any entry."""

    def __str__(self) -> str:
        # KeyError repr()s its argument
        return str(self.args[0]) if self.args else ""


class ArchiveClosedError(PSARCError, RuntimeError):
    pass
