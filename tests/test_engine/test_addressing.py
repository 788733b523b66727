"""Tests for cell addressing helpers."""

import pytest

from excelbot.engine.addressing import (
    cell_to_indices,
    column_to_index,
    index_to_column,
    indices_to_cell,
    is_cell_reference,
)
from excelbot.engine.models import CellAddress


class TestColumnCodec:
    def test_single_letters(self):
        assert column_to_index("A") == 0
        assert column_to_index("Z") == 25

    def test_double_letters(self):
        assert column_to_index("AA") == 26
        assert column_to_index("AZ") == 51
        assert column_to_index("BA") == 52

    def test_case_insensitive(self):
        assert column_to_index("ab") == column_to_index("AB")

    def test_malformed_defaults_to_first_column(self):
        assert column_to_index("") == 0
        assert column_to_index("1") == 0
        assert column_to_index("A-") == 0

    def test_index_to_column(self):
        assert index_to_column(0) == "A"
        assert index_to_column(25) == "Z"
        assert index_to_column(26) == "AA"
        assert index_to_column(701) == "ZZ"
        assert index_to_column(702) == "AAA"

    def test_negative_index_rejected(self):
        with pytest.raises(ValueError):
            index_to_column(-1)

    def test_letters_round_trip(self):
        assert index_to_column(column_to_index("AZ")) == "AZ"
        for letters in ["A", "M", "Z", "AA", "XFD", "ZZZ"]:
            assert index_to_column(column_to_index(letters)) == letters


class TestCellReferences:
    def test_cell_to_indices(self):
        assert cell_to_indices("B3") == CellAddress(row=2, col=1)
        assert cell_to_indices("A1") == CellAddress(row=0, col=0)
        assert cell_to_indices("AA10") == CellAddress(row=9, col=26)

    def test_lowercase_and_absolute(self):
        assert cell_to_indices("b3") == CellAddress(row=2, col=1)
        assert cell_to_indices("$C$10") == CellAddress(row=9, col=2)

    def test_missing_parts_default(self):
        assert cell_to_indices("C") == CellAddress(row=0, col=2)
        assert cell_to_indices("7") == CellAddress(row=6, col=0)
        assert cell_to_indices("") == CellAddress(row=0, col=0)

    def test_row_zero_clamps(self):
        assert cell_to_indices("A0") == CellAddress(row=0, col=0)

    def test_indices_to_cell(self):
        assert indices_to_cell(2, 1) == "B3"
        assert indices_to_cell(0, 26) == "AA1"

    def test_round_trip_grid(self):
        for r in range(1000):
            for c in range(700):
                assert cell_to_indices(indices_to_cell(r, c)) == CellAddress(row=r, col=c)

    def test_is_cell_reference(self):
        assert is_cell_reference("A1")
        assert is_cell_reference("$B$12")
        assert is_cell_reference(" c3 ")
        assert not is_cell_reference("A")
        assert not is_cell_reference("1A")
        assert not is_cell_reference("A1:B2")
