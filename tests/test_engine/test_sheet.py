"""Tests for the spreadsheet model helpers."""

import pytest

from excelbot.engine.models import AnnotatedCell, CellAddress, ChartMeta, ChartPoint, Sheet
from excelbot.engine.sheet import (
    add_sheet,
    create_empty_document,
    document_from_rows,
    document_to_dict,
    export_snapshot,
    find_empty_regions,
    grow_grid_to,
    resolve_column,
    sheet_context,
)


class TestDocumentCreation:
    def test_empty_document_layout(self):
        doc = create_empty_document(columns=3, rows=2)
        sheet = doc.get_active_sheet()
        assert sheet.data == [["A", "B", "C"], ["", "", ""], ["", "", ""]]
        assert doc.get_sheet_names() == ["Sheet 1"]

    def test_default_size(self):
        sheet = create_empty_document().get_active_sheet()
        assert sheet.row_count() == 21
        assert sheet.column_count() == 15
        assert sheet.header()[-1] == "O"

    def test_document_from_rows(self):
        doc = document_from_rows({"A": [[1, None]], "B": [["x"]]})
        assert doc.active_sheet == "A"
        assert doc.get_sheet("A").data == [[1, ""]]

    def test_document_from_rows_active_sheet(self):
        doc = document_from_rows({"A": [[1]], "B": [[2]]}, active_sheet="B")
        assert doc.get_active_sheet().data == [[2]]

    def test_document_from_rows_rejects_empty(self):
        with pytest.raises(ValueError):
            document_from_rows({})
        with pytest.raises(ValueError):
            document_from_rows({"A": [[1]]}, active_sheet="missing")

    def test_add_sheet_returns_new_document(self):
        doc = create_empty_document(columns=2, rows=1)
        new_doc = add_sheet(doc, "Extra", [["a", None]])
        assert new_doc.active_sheet == "Extra"
        assert new_doc.get_sheet("Extra").data == [["a", ""]]
        assert "Extra" not in doc.sheets

    def test_add_sheet_without_activation(self):
        doc = create_empty_document(columns=2, rows=1)
        new_doc = add_sheet(doc, "Extra", [], activate=False)
        assert new_doc.active_sheet == "Sheet 1"

    def test_clone_is_independent(self):
        doc = create_empty_document(columns=2, rows=1)
        copy = doc.clone()
        copy.get_active_sheet().data[1][0] = "changed"
        assert doc.get_active_sheet().data[1][0] == ""

    def test_with_active_sheet(self):
        doc = document_from_rows({"A": [[1]], "B": [[2]]})
        assert doc.with_active_sheet("B").active_sheet == "B"
        assert doc.active_sheet == "A"
        with pytest.raises(ValueError):
            doc.with_active_sheet("C")


class TestGrowGrid:
    def test_grow_small_grid(self):
        grid = [[""] * 5 for _ in range(5)]
        grown = grow_grid_to(grid, 15, 20)
        assert len(grown) >= 16
        assert len(grown[15]) >= 21
        assert len(grown[10]) == 15
        assert len(grid) == 5

    def test_existing_data_untouched(self):
        grid = [[1, 2], [3]]
        grown = grow_grid_to(grid, 1, 3)
        assert grown[0] == [1, 2]
        assert grown[1] == [3, "", "", ""]

    def test_idempotent(self):
        grid = [["a"]]
        once = grow_grid_to(grid, 4, 6)
        twice = grow_grid_to(once, 4, 6)
        assert once == twice

    def test_never_truncates(self):
        grid = [[1, 2, 3, 4]]
        assert grow_grid_to(grid, 0, 1) == [[1, 2, 3, 4]]

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            grow_grid_to([], -1, 0)


class TestResolveColumn:
    header = ["Name", "Age", " City "]

    def test_integer(self):
        assert resolve_column(2, self.header) == 2
        assert resolve_column(1.0, self.header) == 1

    def test_digit_string(self):
        assert resolve_column("1", self.header) == 1

    def test_header_name(self):
        assert resolve_column("age", self.header) == 1
        assert resolve_column("City", self.header) == 2

    def test_letters(self):
        assert resolve_column("B", ["x", "y"]) == 1
        assert resolve_column("aa", []) == 26

    def test_header_name_wins_over_letters(self):
        assert resolve_column("B", ["x", "y", "B"]) == 2

    def test_invalid(self):
        for column in [-1, True, "", "no such col!", None]:
            with pytest.raises(ValueError):
                resolve_column(column, self.header)


class TestExport:
    def test_snapshot_resolves_annotated_cells(self):
        doc = document_from_rows({"S": [[1, "x"]]})
        doc.get_active_sheet().data[0][0] = AnnotatedCell(value=3, formula="=1+2")
        assert export_snapshot(doc) == {"S": [[3, "x"]]}

    def test_document_to_dict(self):
        doc = document_from_rows({"S": [["a"]]})
        sheet = doc.get_active_sheet()
        sheet.data[0].append(AnnotatedCell(value=2, formula="=1+1", is_ai_generated=True))
        sheet.active_cell = CellAddress(0, 1)
        sheet.charts.append(ChartMeta("bar", "T", (ChartPoint("x", 1),)))

        result = document_to_dict(doc)
        entry = result["sheets"]["S"]
        assert result["activeSheet"] == "S"
        assert entry["data"][0][1] == {"value": 2, "formula": "=1+1", "isAIGenerated": True}
        assert entry["activeCell"] == {"row": 0, "col": 1}
        assert entry["charts"] == [{"type": "bar", "title": "T", "data": [{"name": "x", "value": 1}]}]


class TestContext:
    def test_find_empty_regions(self):
        grid = create_empty_document().get_active_sheet().data
        regions = find_empty_regions(grid)
        assert regions[0] == {"startRow": 1, "startCol": 0, "rowSpan": 10, "colSpan": 5}
        assert all(r["startRow"] >= 1 for r in regions)

    def test_no_regions_in_full_grid(self):
        grid = [[1] * 5 for _ in range(5)]
        assert find_empty_regions(grid) == []

    def test_sheet_context(self):
        doc = document_from_rows({"Data": [["Name", "Score"], ["Amy", 3], ["Bob", ""]]})
        context = sheet_context(doc)
        assert context["activeSheet"] == "Data"
        assert context["rowCount"] == 3
        assert context["columnCount"] == 2
        assert context["headerRow"] == ["Name", "Score"]
        assert context["lastDataRowByColumn"] == [2, 1]
        assert len(context["sampleData"]) == 3
        assert context["emptyRegions"] == []

    def test_sheet_context_limits_samples(self):
        doc = create_empty_document(columns=2, rows=30)
        context = sheet_context(doc, sample_rows=5)
        assert len(context["sampleData"]) == 5
        assert len(context["emptyRegions"]) <= 3

    def test_sheet_defaults(self):
        sheet = Sheet()
        assert sheet.row_count() == 0
        assert sheet.column_count() == 0
        assert sheet.get_cell(3, 3) == ""
