"""Tests for the formula evaluator."""

import pytest

from excelbot.engine.evaluator import (
    FormulaSyntaxError,
    calculate_formula,
    evaluate_arithmetic,
    format_result,
    substitute_references,
)
from excelbot.engine.models import DIV0, ERROR, NUM, AnnotatedCell, ExcelError


@pytest.fixture
def grid():
    return [
        ["x", 1],
        ["y", 2],
        ["z", "3"],
    ]


class TestAggregateFormulas:
    def test_sum_with_text_and_numeric_strings(self, grid):
        assert calculate_formula("=SUM(A1:B3)", grid) == 6

    def test_average_with_blank(self):
        grid = [[4], [""], [6]]
        assert calculate_formula("=AVERAGE(A1:A3)", grid) == 5

    def test_count(self, grid):
        assert calculate_formula("=COUNT(A1:B3)", grid) == 6

    def test_max_min(self, grid):
        assert calculate_formula("=MAX(B1:B3)", grid) == 3
        assert calculate_formula("=MIN(B1:B3)", grid) == 1

    def test_case_insensitive(self, grid):
        assert calculate_formula("=sum(b1:b3)", grid) == 6

    def test_cell_list_argument(self, grid):
        assert calculate_formula("=SUM(B1,B3)", grid) == 4

    def test_reversed_range(self, grid):
        assert calculate_formula("=SUM(B3:B1)", grid) == 6

    def test_out_of_range_cells_are_skipped(self, grid):
        assert calculate_formula("=SUM(B1:B100)", grid) == 6

    def test_annotated_cells_resolve_value(self):
        grid = [[AnnotatedCell(value=10, formula="=5*2")], [5]]
        assert calculate_formula("=SUM(A1:A2)", grid) == 15

    def test_invalid_argument(self, grid):
        assert calculate_formula("=SUM(hello)", grid) == ERROR

    def test_average_result_is_float(self):
        assert calculate_formula("=AVERAGE(A1:A2)", [[1], [2]]) == 1.5

    def test_huge_range_is_clipped_to_grid(self):
        assert calculate_formula("=SUM(A1:ZZ9999999)", [[1]]) == 1
        assert calculate_formula("=COUNT(A1:ZZZ9999999)", [["a", "b"], ["c"]]) == 3
        assert calculate_formula("=MAX(C5:ZZ9999999)", [[1]]) == 0

    def test_aggregate_overflow(self):
        assert calculate_formula("=AVERAGE(A1:A2)", [[10 ** 400], [1]]) == NUM


class TestArithmeticFormulas:
    def test_references(self, grid):
        assert calculate_formula("=B1+B2*B3", grid) == 7

    def test_parentheses_and_unary(self):
        assert calculate_formula("=-(2+3)*4", []) == -20
        assert calculate_formula("=+5--2", []) == 7

    def test_division(self):
        assert calculate_formula("=7/2", []) == 3.5
        assert calculate_formula("=6/3", []) == 2
        assert isinstance(calculate_formula("=6/3", []), int)

    def test_missing_and_text_references_are_zero(self, grid):
        assert calculate_formula("=A1+Z99+1", grid) == 1

    def test_exponent_literal(self):
        assert calculate_formula("=1E3+1", []) == 1001

    def test_division_by_zero(self):
        assert calculate_formula("=1/0", []) == DIV0
        assert calculate_formula("=B1/A1", [["", 5]]) == DIV0

    def test_overflow(self):
        assert calculate_formula("=1E308*10", []) == NUM

    def test_integer_literal_beyond_digit_limit(self):
        assert calculate_formula("=" + "9" * 5000 + "+1", []) == NUM

    def test_huge_integer_cell_reference(self):
        assert isinstance(calculate_formula("=A1+1", [[10 ** 5000]]), ExcelError)

    def test_syntax_errors(self):
        for formula in ["=BOGUS(A1", "=1+", "=(1+2", "=1 2", "=", "=2**3"]:
            result = calculate_formula(formula, [])
            assert isinstance(result, ExcelError), formula

    def test_requires_leading_equals(self):
        assert calculate_formula("1+1", []) == ERROR
        assert calculate_formula(None, []) == ERROR

    def test_no_code_execution(self):
        for formula in [
            "=__import__('os').system('echo hi')",
            "=().__class__",
            "=open('x')",
            "=1;2",
        ]:
            assert isinstance(calculate_formula(formula, []), ExcelError)

    def test_deep_nesting_does_not_crash(self):
        formula = "=" + "(" * 5000 + "1" + ")" * 5000
        result = calculate_formula(formula, [])
        assert result == 1 or isinstance(result, ExcelError)


class TestHelpers:
    def test_substitute_references(self):
        assert substitute_references("A1+B1", [[2, "x"]]) == "2+0"

    def test_substitute_keeps_exponent_literals(self):
        assert substitute_references("1E5", [[1]]) == "1E5"

    def test_evaluate_arithmetic_errors(self):
        with pytest.raises(FormulaSyntaxError):
            evaluate_arithmetic("1+")
        with pytest.raises(ZeroDivisionError):
            evaluate_arithmetic("1/0")

    def test_format_result(self):
        assert format_result(3.0) == "3"
        assert format_result(2.5) == "2.5"
        assert format_result(DIV0) == "#DIV/0!"
