"""Tests for block codecs."""

import lzma
import zlib

import pytest

from psarc_toolkit.psarc.compression import (
    CompressionType,
    LzmaCodec,
    StoreCodec,
    ZlibCodec,
    get_codec,
)
from psarc_toolkit.psarc.errors import DecompressionFailureError, UnsupportedCompressionError

from psarc_builder import text

PAYLOAD = text(5000)


class TestCompressionType:
    def test_from_tag_strips_padding(self):
        assert CompressionType.from_tag(b"zlib") is CompressionType.ZLIB
        assert CompressionType.from_tag(b"LZMA") is CompressionType.LZMA
        assert CompressionType.from_tag(b"\x00\x00\x00\x00") is CompressionType.STORE

    def test_unknown_tag(self):
        with pytest.raises(UnsupportedCompressionError, match="xz"):
            CompressionType.from_tag(b"xz\x00\x00")

    @pytest.mark.parametrize(
        "compression,codec_type",
        [
            (CompressionType.STORE, StoreCodec),
            (CompressionType.ZLIB, ZlibCodec),
            (CompressionType.LZMA, LzmaCodec),
        ],
    )
    def test_get_codec(self, compression, codec_type):
        codec = get_codec(compression)
        assert isinstance(codec, codec_type)
        assert codec.compression is compression


class TestZlibCodec:
    """zlib blocks may carry a zlib header or be raw deflate."""

    def test_zlib_stream(self):
        block = zlib.compress(PAYLOAD)
        assert ZlibCodec().decompress(block, len(PAYLOAD)) == PAYLOAD

    def test_raw_deflate(self):
        compressor = zlib.compressobj(6, zlib.DEFLATED, -zlib.MAX_WBITS)
        block = compressor.compress(PAYLOAD) + compressor.flush()
        assert ZlibCodec().decompress(block, len(PAYLOAD)) == PAYLOAD

    def test_garbage(self):
        with pytest.raises(DecompressionFailureError, match="zlib"):
            ZlibCodec().decompress(b"\xFF" * 64, 100)

    def test_wrong_size(self):
        block = zlib.compress(PAYLOAD)
        with pytest.raises(DecompressionFailureError, match="expected 6000"):
            ZlibCodec().decompress(block, 6000)


class TestLzmaCodec:
    def test_alone_stream(self):
        block = lzma.compress(PAYLOAD, format=lzma.FORMAT_ALONE)
        assert LzmaCodec().decompress(block, len(PAYLOAD)) == PAYLOAD

    def test_garbage(self):
        with pytest.raises(DecompressionFailureError, match="lzma"):
            LzmaCodec().decompress(b"\x00" * 64, 100)

    def test_truncated_stream(self):
        block = lzma.compress(PAYLOAD, format=lzma.FORMAT_ALONE)
        with pytest.raises(DecompressionFailureError):
            LzmaCodec().decompress(block[: len(block) // 2], len(PAYLOAD))


class TestStoreCodec:
    def test_passthrough(self):
        assert StoreCodec().decompress(b"abc", 3) == b"abc"

    def test_length_mismatch(self):
        with pytest.raises(DecompressionFailureError, match="expected 4"):
            StoreCodec().decompress(b"abc", 4)


class TestOversizedBlocks:
    """A block decoding to more than its expected size is rejected, not trimmed."""

    def test_zlib(self):
        block = zlib.compress(PAYLOAD)
        with pytest.raises(DecompressionFailureError, match="more than 100"):
            ZlibCodec().decompress(block, 100)

    def test_lzma(self):
        block = lzma.compress(PAYLOAD, format=lzma.FORMAT_ALONE)
        with pytest.raises(DecompressionFailureError, match="more than 100"):
            LzmaCodec().decompress(block, 100)

    def test_zlib_unterminated_stream(self):
        block = zlib.compress(PAYLOAD)
        with pytest.raises(DecompressionFailureError, match="did not end"):
            ZlibCodec().decompress(block[:-4], len(PAYLOAD))
