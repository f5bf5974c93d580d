"""Block codecs used by PSARC archives.

The codec is chosen once per archive from the header's compression tag:

- ``zlib``: each block is a zlib (or raw deflate) stream
- ``lzma``: each block is an LZMA "alone" stream with a 13-byte header
- anything empty/``none``: blocks are stored as-is

Every call builds fresh decoder state, so codecs are safe to share between
threads.
"""

import lzma
import zlib
from enum import Enum

from .errors import DecompressionFailureError, UnsupportedCompressionError


class CompressionType(Enum):
    """PSARC compression tags."""

    STORE = "none"
    ZLIB = "zlib"
    LZMA = "lzma"

    @classmethod
    def from_tag(cls, tag: bytes) -> "CompressionType":
        """Map the raw 4-byte header tag to a compression type."""
        name = tag.rstrip(b"\x00").decode("ascii", errors="replace").lower()
        if name in ("", "none"):
            return cls.STORE
        for member in cls:
            if member.value == name:
                return member
        raise UnsupportedCompressionError(f"Unsupported compression type: {tag!r}")


class Codec:
    """Decoder for one block of entry data."""

    compression = CompressionType.STORE

    def decompress(self, block: bytes, expected_size: int) -> bytes:
        """Decode ``block`` into exactly ``expected_size`` bytes."""
        if len(block) != expected_size:
            raise DecompressionFailureError(
                f"Stored block is {len(block)} bytes, expected {expected_size}"
            )
        return block


class StoreCodec(Codec):
    pass


class ZlibCodec(Codec):
    compression = CompressionType.ZLIB

    # zlib header, raw deflate, then zlib/gzip auto-detection
    WINDOW_BITS = (zlib.MAX_WBITS, -zlib.MAX_WBITS, zlib.MAX_WBITS | 32)

    def decompress(self, block: bytes, expected_size: int) -> bytes:
        last_error = None
        for wbits in self.WINDOW_BITS:
            decompressor = zlib.decompressobj(wbits)
            try:
                # One spare byte so that oversized output is visible
                data = decompressor.decompress(block, expected_size + 1)
            except zlib.error as e:
                last_error = e
                continue
            _check_overrun(data, expected_size, self.compression)
            if not decompressor.eof:
                last_error = "stream did not end"
                continue
            return _check_size(data, expected_size, self.compression)
        raise DecompressionFailureError(
            f"zlib could not decode a {len(block)}-byte block: {last_error}"
        )


class LzmaCodec(Codec):
    compression = CompressionType.LZMA

    def decompress(self, block: bytes, expected_size: int) -> bytes:
        decompressor = lzma.LZMADecompressor(format=lzma.FORMAT_ALONE)
        try:
            data = decompressor.decompress(block, max_length=expected_size + 1)
        except lzma.LZMAError as e:
            raise DecompressionFailureError(
                f"lzma could not decode a {len(block)}-byte block: {e}"
            ) from e
        _check_overrun(data, expected_size, self.compression)
        if not decompressor.eof:
            raise DecompressionFailureError(
                f"lzma block ended early: {len(data)} of {expected_size} bytes"
            )
        return _check_size(data, expected_size, self.compression)


def _check_overrun(data: bytes, expected_size: int, compression: CompressionType) -> None:
    if len(data) > expected_size:
        raise DecompressionFailureError(
            f"{compression.value} block decodes to more than {expected_size} bytes"
        )


def _check_size(data: bytes, expected_size: int, compression: CompressionType) -> bytes:
    if len(data) != expected_size:
        raise DecompressionFailureError(
            f"{compression.value} block decoded to {len(data)} bytes, "
            f"expected {expected_size}"
        )
    return data


_CODECS = {
    CompressionType.STORE: StoreCodec,
    CompressionType.ZLIB: ZlibCodec,
    CompressionType.LZMA: LzmaCodec,
}


def get_codec(compression: CompressionType) -> Codec:
    """Return the codec for an archive's compression type."""
    return _CODECS[compression]()
