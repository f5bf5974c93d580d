"""Tests for TOC parsing and the block size table."""

import pytest

from psarc_toolkit.psarc.errors import TocSizeMismatchError
from psarc_toolkit.psarc.header import parse_header
from psarc_toolkit.psarc.toc import BlockSizeTable, block_count, parse_toc

from psarc_builder import build_header, build_toc


def header_for(toc: bytes, entry_count: int, block_size: int = 65536, entry_size: int = 30):
    return parse_header(
        build_header(
            toc_length=32 + len(toc),
            entry_count=entry_count,
            block_size=block_size,
            entry_size=entry_size,
        )
    )


class TestBlockCount:
    @pytest.mark.parametrize(
        "length,expected",
        [(0, 0), (1, 1), (1024, 1), (1025, 2), (4096, 4)],
    )
    def test_block_count(self, length, expected):
        assert block_count(length, 1024) == expected


class TestBlockSizeTable:
    """Tests for the shared block size arena."""

    def test_zero_cell_is_nominal_block_size(self):
        table = BlockSizeTable([0, 100, 0], 1024)
        assert table.compressed_size(0) == 1024
        assert table.compressed_size(1) == 100
        assert table.cells == (0, 100, 0)

    def test_relative_offsets(self):
        table = BlockSizeTable([10, 0, 20, 30], 1024)
        assert table.relative_offset(0, 0) == 0
        assert table.relative_offset(0, 2) == 10 + 1024
        assert table.relative_offset(1, 3) == 1024 + 20

    def test_len(self):
        assert len(BlockSizeTable([1, 2, 3], 1024)) == 3


class TestParseToc:
    """Tests for parse_toc."""

    def test_entries_in_record_order(self):
        toc = build_toc(
            records=[(0, 12, 200), (1, 70000, 212), (3, 0, 0)],
            cells=[12, 0, 300],
        )
        entries, table = parse_toc(toc, header_for(toc, 3))

        assert [e.index for e in entries] == [0, 1, 2]
        assert entries[0].uncompressed_size == 12
        assert entries[0].file_offset == 200
        assert entries[1].block_index == 1
        assert entries[1].block_count == 2
        assert entries[1].block_range == range(1, 3)
        assert entries[1].length == 70000
        assert entries[2].block_count == 0
        assert table.cells == (12, 0, 300)
        assert all(e.name is None for e in entries)

    def test_40_bit_fields(self):
        toc = build_toc(records=[(0, 10, 0xFFFFFFFFFF)], cells=[10])
        entries, _ = parse_toc(toc, header_for(toc, 1))
        assert entries[0].file_offset == 0xFFFFFFFFFF

    def test_other_record_widths(self):
        """Record size 20 + 2 * width decides the length/offset field width."""
        toc = build_toc(records=[(0, 5, 0x123456)], cells=[5], entry_size=26)
        entries, _ = parse_toc(toc, header_for(toc, 1, entry_size=26))
        assert entries[0].uncompressed_size == 5
        assert entries[0].file_offset == 0x123456

    @pytest.mark.parametrize("entry_size", [19, 21, 40])
    def test_invalid_record_size(self, entry_size):
        toc = b"\x00" * 64
        with pytest.raises(TocSizeMismatchError, match="toc_entry_size"):
            parse_toc(toc, header_for(toc, 1, entry_size=entry_size))

    def test_records_larger_than_toc(self):
        toc = build_toc(records=[(0, 5, 100)], cells=[5])
        with pytest.raises(TocSizeMismatchError):
            parse_toc(toc, header_for(toc, 3))

    def test_three_byte_cells(self):
        toc = build_toc(records=[(0, 0x50000, 100)], cells=[0x12345, 0, 7], block_size=0x20000)
        entries, table = parse_toc(toc, header_for(toc, 1, block_size=0x20000))
        assert table.cells == (0x12345, 0, 7)
        assert entries[0].block_count == 3

    def test_missing_blocks(self):
        toc = build_toc(records=[(0, 70000, 100)], cells=[0])
        with pytest.raises(TocSizeMismatchError, match="needs blocks"):
            parse_toc(toc, header_for(toc, 1))

    def test_surplus_cells_strict(self):
        toc = build_toc(records=[(0, 10, 100)], cells=[10, 99])
        with pytest.raises(TocSizeMismatchError, match="1 blocks, block table has 2"):
            parse_toc(toc, header_for(toc, 1))

    def test_surplus_cells_lenient(self):
        toc = build_toc(records=[(0, 10, 100)], cells=[10, 99])
        entries, table = parse_toc(toc, header_for(toc, 1), strict=False)
        assert len(entries) == 1
        assert len(table) == 2

    def test_partial_cell_strict(self):
        toc = build_toc(records=[(0, 10, 100)], cells=[10]) + b"\x00"
        with pytest.raises(TocSizeMismatchError, match="multiple"):
            parse_toc(toc, header_for(toc, 1))

    def test_partial_cell_lenient(self):
        toc = build_toc(records=[(0, 10, 100)], cells=[10]) + b"\x00"
        _, table = parse_toc(toc, header_for(toc, 1), strict=False)
        assert table.cells == (10,)

    def test_entries_are_immutable(self):
        toc = build_toc(records=[(0, 10, 100)], cells=[10])
        entries, _ = parse_toc(toc, header_for(toc, 1))
        with pytest.raises(AttributeError):
            entries[0].name = "x"
