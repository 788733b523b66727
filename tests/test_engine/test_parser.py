"""Tests for operation parsing and validation."""

from excelbot.engine.models import (
    AddFormulaOperation,
    ChartPoint,
    CreateChartOperation,
    FilterOperation,
    SortOperation,
    UpdateCellOperation,
)
from excelbot.engine.parser import (
    MAX_CHART_POINTS,
    OperationParser,
    parse_operation,
    parse_operations,
)


class TestParseOperation:
    def test_update_cell(self):
        op, errors = parse_operation({"type": "update_cell", "data": {"row": 2, "col": 1, "value": "x"}})
        assert errors == []
        assert op == UpdateCellOperation(row=2, col=1, value="x")

    def test_update_cell_loose_indices(self):
        op, errors = parse_operation({"type": "update_cell", "data": {"row": "3", "col": 2.0, "value": 5}})
        assert errors == []
        assert (op.row, op.col, op.value) == (3, 2, 5)

    def test_update_cell_null_value(self):
        op, _ = parse_operation({"type": "update_cell", "data": {"row": 0, "col": 0, "value": None}})
        assert op.value == ""

    def test_update_cell_invalid_indices(self):
        op, errors = parse_operation({"type": "update_cell", "data": {"row": -1, "col": "B"}})
        assert op is None
        assert {e.field for e in errors} == {"row", "col"}

    def test_add_formula(self):
        op, errors = parse_operation({"type": "add_formula", "data": {"row": 4, "col": 1, "formula": " =SUM(B1:B4) "}})
        assert errors == []
        assert op == AddFormulaOperation(row=4, col=1, formula="=SUM(B1:B4)")

    def test_add_formula_requires_integers(self):
        op, errors = parse_operation({"type": "add_formula", "data": {"row": "4", "col": 1, "formula": "=1"}})
        assert op is None
        assert errors[0].field == "row"

    def test_add_formula_requires_formula(self):
        op, errors = parse_operation({"type": "add_formula", "data": {"row": 0, "col": 0, "formula": "  "}})
        assert op is None
        assert errors[0].field == "formula"

    def test_create_chart(self):
        op, errors = parse_operation({
            "type": "create_chart",
            "data": {
                "chartType": "Bar",
                "title": "Sales",
                "data": [{"name": "Q1", "value": "10"}, {"value": 5}, {"name": "Q3", "value": "n/a"}],
            },
        })
        assert errors == []
        assert op == CreateChartOperation(
            chart_type="bar",
            title="Sales",
            data=[ChartPoint("Q1", 10), ChartPoint("Item 2", 5), ChartPoint("Q3", 0)],
        )

    def test_create_chart_defaults(self):
        op, errors = parse_operation({"type": "create_chart", "data": {"chartType": "pie"}})
        assert errors == []
        assert op.title == "Chart"
        assert op.data == []

    def test_create_chart_caps_points(self):
        points = [{"name": str(i), "value": i} for i in range(25)]
        op, _ = parse_operation({"type": "create_chart", "data": {"chartType": "line", "data": points}})
        assert len(op.data) == MAX_CHART_POINTS

    def test_create_chart_unknown_type(self):
        op, errors = parse_operation({"type": "create_chart", "data": {"chartType": "scatter"}})
        assert op is None
        assert errors[0].field == "chartType"
        assert "scatter" in errors[0].message

    def test_create_chart_missing_type(self):
        op, errors = parse_operation({"type": "create_chart", "data": {"data": "oops"}})
        assert op is None
        assert {e.field for e in errors} == {"chartType", "data"}

    def test_sort(self):
        op, errors = parse_operation({"type": "sort", "data": {"column": "Name"}})
        assert errors == []
        assert op == SortOperation(column="Name")

    def test_sort_requires_column(self):
        op, errors = parse_operation({"type": "sort", "data": {}})
        assert op is None
        assert errors[0].field == "column"

    def test_filter(self):
        op, errors = parse_operation({"type": "filter", "data": {"column": 0, "value": "am"}})
        assert errors == []
        assert op == FilterOperation(column=0, value="am")

    def test_filter_requires_value(self):
        op, errors = parse_operation({"type": "filter", "data": {"column": "A", "value": None}})
        assert op is None
        assert errors[0].field == "value"

    def test_unknown_type(self):
        op, errors = parse_operation({"type": "delete_row", "data": {}})
        assert op is None
        assert errors[0].operation_type == "delete_row"
        assert errors[0].field == "type"

    def test_missing_type(self):
        op, errors = parse_operation({"data": {}})
        assert op is None
        assert errors[0].field == "type"

    def test_not_an_object(self):
        op, errors = parse_operation(["update_cell"])
        assert op is None
        assert errors[0].operation_type == "unknown"

    def test_data_must_be_object(self):
        op, errors = parse_operation({"type": "sort", "data": "Name"})
        assert op is None
        assert errors[0].field == "data"

    def test_error_string(self):
        _, errors = parse_operation({"type": "sort", "data": {}})
        assert str(errors[0]).startswith("sort.column:")


class TestParseJson:
    def test_single_object(self):
        ops, errors = parse_operations('{"type": "sort", "data": {"column": "A"}}')
        assert errors == []
        assert ops == [SortOperation(column="A")]

    def test_array_keeps_valid_operations(self):
        ops, errors = OperationParser.parse(
            '[{"type": "sort", "data": {"column": "A"}}, {"type": "explode"}]'
        )
        assert ops == [SortOperation(column="A")]
        assert len(errors) == 1

    def test_operations_wrapper(self):
        ops, errors = parse_operations('{"operations": [{"type": "filter", "data": {"column": "A", "value": 1}}]}')
        assert errors == []
        assert ops == [FilterOperation(column="A", value=1)]

    def test_invalid_json(self):
        ops, errors = parse_operations("{not json")
        assert ops == []
        assert errors[0].operation_type == "parse"

    def test_payload_round_trip(self):
        op = UpdateCellOperation(row=1, col=2, value="v")
        parsed, _ = parse_operation(op.to_payload())
        assert parsed == op
