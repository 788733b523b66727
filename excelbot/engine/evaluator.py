"""公式求值器 - 聚合函数与四则运算表达式"""

import logging
import math
import re
from typing import List, Tuple, Union

from excelbot.engine.addressing import cell_to_indices
from excelbot.engine.functions import (
    AGGREGATE_FUNC_MAP,
    collect_values,
    expand_range,
    grid_bounds,
    is_range_expression,
)
from excelbot.engine.models import (
    DIV0,
    ERROR,
    NUM,
    ExcelError,
    Grid,
    Number,
    format_number,
    resolve_value,
    to_number,
)

logger = logging.getLogger(__name__)


# 整个公式是一个聚合函数调用，如 SUM(A1:B3)
_AGGREGATE_CALL = re.compile(
    r"^(SUM|AVERAGE|COUNT|MAX|MIN)\s*\(\s*([^()]*?)\s*\)$",
    re.IGNORECASE,
)

# 算术表达式中的单元格引用（数字后面的字母不算，如 1E5）
_CELL_REF = re.compile(r"(?<![\d.A-Za-z])\$?([A-Za-z]+)\$?(\d+)")

_TOKEN = re.compile(
    r"\s*(?:"
    r"(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<op>[-+*/()])"
    r")"
)


class FormulaSyntaxError(ValueError):
    """表达式语法错误"""


# ==================== 算术表达式解析 ====================


def tokenize(expression: str) -> List[Tuple[str, str]]:
    """
    将算术表达式切分为 token 列表

    只接受数字字面量和 + - * / ( )，其他任何字符都视为语法错误。
    """
    tokens = []
    pos = 0
    expression = expression.rstrip()
    while pos < len(expression):
        match = _TOKEN.match(expression, pos)
        if not match or match.end() == pos:
            raise FormulaSyntaxError(f"无法识别的字符: {expression[pos:pos + 10]!r}")
        if match.group("number") is not None:
            tokens.append(("number", match.group("number")))
        else:
            tokens.append(("op", match.group("op")))
        pos = match.end()
    return tokens


class ArithmeticParser:
    """
    递归下降的四则运算解析器

    语法:
        expr   := term (('+' | '-') term)*
        term   := factor (('*' | '/') factor)*
        factor := ('+' | '-') factor | '(' expr ')' | NUMBER
    """

    def __init__(self, expression: str):
        self.tokens = tokenize(expression)
        self.pos = 0

    def parse(self) -> Number:
        """解析并计算整个表达式"""
        if not self.tokens:
            raise FormulaSyntaxError("表达式为空")
        value = self._expr()
        if self.pos != len(self.tokens):
            raise FormulaSyntaxError(f"多余的内容: {self.tokens[self.pos][1]!r}")
        return value

    def _peek(self) -> Union[str, None]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos][1]
        return None

    def _advance(self) -> Tuple[str, str]:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def _expr(self) -> Number:
        value = self._term()
        while self._peek() in ("+", "-"):
            op = self._advance()[1]
            right = self._term()
            value = value + right if op == "+" else value - right
        return value

    def _term(self) -> Number:
        value = self._factor()
        while self._peek() in ("*", "/"):
            op = self._advance()[1]
            right = self._factor()
            if op == "*":
                value = value * right
            else:
                if right == 0:
                    raise ZeroDivisionError("除数为 0")
                value = value / right
        return value

    def _factor(self) -> Number:
        if self.pos >= len(self.tokens):
            raise FormulaSyntaxError("表达式不完整")

        kind, text = self._advance()
        if kind == "number":
            if any(ch in text for ch in ".eE"):
                return float(text)
            try:
                return int(text)
            except ValueError:
                # 超过整数位数上限
                return float(text)
        if text == "-":
            return -self._factor()
        if text == "+":
            return self._factor()
        if text == "(":
            value = self._expr()
            if self._peek() != ")":
                raise FormulaSyntaxError("括号不匹配")
            self._advance()
            return value
        raise FormulaSyntaxError(f"意外的符号: {text!r}")


def evaluate_arithmetic(expression: str) -> Number:
    """计算只含数字与四则运算的表达式（出错时抛出异常）"""
    return ArithmeticParser(expression).parse()


# ==================== 公式计算 ====================


def _cell_number(grid: Grid, ref: str) -> str:
    """取出引用单元格的数值文本（越界、空值或非数值时为 0）"""
    address = cell_to_indices(ref)
    if 0 <= address.row < len(grid) and 0 <= address.col < len(grid[address.row]):
        number = to_number(resolve_value(grid[address.row][address.col]))
        if number is not None:
            return repr(number) if isinstance(number, float) else str(number)
    return "0"


def substitute_references(expression: str, grid: Grid) -> str:
    """将表达式中的单元格引用替换为对应的数值"""
    return _CELL_REF.sub(
        lambda m: _cell_number(grid, m.group(1) + m.group(2)),
        expression,
    )


def _normalize(value: Number) -> Union[Number, ExcelError]:
    """检查结果是否为有限数值，整数值的 float 转为 int"""
    try:
        finite = math.isfinite(value)
    except OverflowError:
        return NUM
    if not finite:
        return NUM
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def calculate_formula(formula: str, grid: Grid) -> Union[Number, ExcelError]:
    """
    计算公式

    Args:
        formula: 公式文本（必须以 = 开头）
        grid: 当前工作表的网格数据

    Returns:
        计算结果；失败时返回 ExcelError（不抛出异常）
    """
    if not isinstance(formula, str) or not formula.startswith("="):
        return ERROR

    text = formula[1:].strip()

    match = _AGGREGATE_CALL.match(text)
    if match:
        func_name = match.group(1).upper()
        argument = match.group(2)
        if not is_range_expression(argument):
            logger.debug(f"无效的区域参数: {formula}")
            return ERROR
        values = collect_values(grid, expand_range(argument, bounds=grid_bounds(grid)))
        try:
            return _normalize(AGGREGATE_FUNC_MAP[func_name](values))
        except OverflowError:
            return NUM

    try:
        expression = substitute_references(text, grid)
        value = evaluate_arithmetic(expression)
    except ZeroDivisionError:
        return DIV0
    except (FormulaSyntaxError, OverflowError, RecursionError, ValueError) as e:
        logger.debug(f"公式计算失败: {formula} ({e})")
        return ExcelError(ERROR.code, str(e))

    return _normalize(value)


def format_result(value: Union[Number, ExcelError]) -> str:
    """格式化计算结果用于显示"""
    if isinstance(value, ExcelError):
        return value.code
    return format_number(value)
