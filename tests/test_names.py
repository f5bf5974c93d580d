"""Tests for manifest name resolution."""

import pytest

from psarc_toolkit.psarc.errors import DecompressionFailureError
from psarc_toolkit.psarc.names import (
    PSARCManifest,
    build_name_index,
    normalize_name,
    resolve_names,
)
from psarc_toolkit.psarc.toc import PSARCEntry


def make_entries(count: int):
    return [
        PSARCEntry(
            index=i,
            name_digest=b"\x00" * 16,
            block_index=i,
            block_count=1,
            uncompressed_size=10,
            file_offset=100 + 10 * i,
        )
        for i in range(count)
    ]


class TestPSARCManifest:
    def test_from_data(self):
        manifest = PSARCManifest.from_data(b"a/one.bin\nb/two.bin\n")
        assert manifest.filenames == ["a/one.bin", "b/two.bin"]

    def test_crlf_and_blank_lines(self):
        manifest = PSARCManifest.from_data(b"a.bin\r\n\r\n  b.bin \r\n")
        assert manifest.filenames == ["a.bin", "b.bin"]

    def test_utf8_bom(self):
        assert PSARCManifest.from_data(b"\xef\xbb\xbfa.bin").filenames == ["a.bin"]

    def test_not_text(self):
        with pytest.raises(UnicodeDecodeError):
            PSARCManifest.from_data(b"\xff\xfe\xfa")


class TestResolveNames:
    """Tests for resolve_names."""

    def test_positional_assignment(self):
        entries = make_entries(3)
        named = resolve_names(entries, lambda entry: b"first.bin\nsecond.bin\n")

        assert named[0].name is None
        assert named[1].name == "first.bin"
        assert named[2].name == "second.bin"
        assert [e.index for e in named] == [0, 1, 2]
        # Originals untouched
        assert entries[1].name is None

    def test_reads_entry_zero(self):
        seen = []

        def read_entry(entry):
            seen.append(entry.index)
            return b"x"

        resolve_names(make_entries(2), read_entry)
        assert seen == [0]

    def test_short_manifest(self):
        named = resolve_names(make_entries(4), lambda entry: b"only.bin")
        assert [e.name for e in named] == [None, "only.bin", None, None]

    def test_undecodable_manifest(self, caplog):
        named = resolve_names(make_entries(3), lambda entry: b"\xff\xfe\x00bad")
        assert all(e.name is None for e in named)
        assert "index-only" in caplog.text

    def test_unreadable_manifest(self):
        def read_entry(entry):
            raise DecompressionFailureError("bad block")

        named = resolve_names(make_entries(3), read_entry)
        assert all(e.name is None for e in named)

    def test_no_entries(self):
        assert resolve_names([], lambda entry: b"") == []


class TestNameIndex:
    def test_normalize(self):
        assert normalize_name("/a/B.bin") == "a/B.bin"
        assert normalize_name("/a/B.bin", ignore_case=True) == "a/b.bin"

    def test_first_duplicate_wins(self):
        entries = resolve_names(make_entries(3), lambda entry: b"dup\ndup")
        assert build_name_index(entries) == {"dup": 1}

    def test_ignore_case(self):
        entries = resolve_names(make_entries(2), lambda entry: b"Songs/A.WEM")
        assert build_name_index(entries, ignore_case=True) == {"songs/a.wem": 1}
