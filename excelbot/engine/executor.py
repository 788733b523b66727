"""执行引擎 - 将操作应用到表格文档，生成新的快照"""

import logging
import random
from typing import Any, Dict, List, Optional, Tuple, Union

from excelbot.core.config import settings
from excelbot.engine.evaluator import calculate_formula
from excelbot.engine.models import (
    AddFormulaOperation,
    AnnotatedCell,
    ApplyResult,
    CellAddress,
    ChartMeta,
    ChartPoint,
    CreateChartOperation,
    ExcelError,
    ExecutionResult,
    FilterOperation,
    Grid,
    Operation,
    OperationError,
    Sheet,
    SortOperation,
    SpreadsheetDocument,
    UpdateCellOperation,
    display_value,
    resolve_value,
    to_number,
)
from excelbot.engine.parser import OperationParser
from excelbot.engine.sheet import grow_grid_to, resolve_column

logger = logging.getLogger(__name__)


# 图表区域的锚点（第 1 行第 0 列，表头之后）
CHART_ANCHOR_ROW = 1
CHART_ANCHOR_COL = 0

# 没有提供数据时生成的占位分类
PLACEHOLDER_CATEGORIES = ["A", "B", "C", "D", "E"]


class OperationFailed(Exception):
    """操作执行失败（携带结构化错误）"""

    def __init__(self, error: OperationError):
        self.error = error
        super().__init__(str(error))


# ==================== 单元格构造 ====================


def formula_cell(text: str, grid: Grid) -> AnnotatedCell:
    """
    计算公式并生成单元格

    计算成功时 value 为结果；失败时 value 保留公式原文。
    两种情况下 formula 都保存原始公式。
    """
    result = calculate_formula(text, grid)
    if isinstance(result, ExcelError):
        logger.info(f"公式计算失败，保留原文: {text} ({result.detail or result.code})")
        return AnnotatedCell(value=text, formula=text, is_ai_generated=True)
    return AnnotatedCell(value=result, formula=text, is_ai_generated=True)


# ==================== 排序与筛选的比较规则 ====================


def sort_key(value: Any) -> Tuple[int, Any, str]:
    """
    排序键

    数值（含数字字符串）排在前面并按数值比较；其余按字符串比较
    （先忽略大小写，再比较原文）。
    """
    number = to_number(value)
    if number is not None:
        return (0, number, "")
    text = display_value(value)
    return (1, text.casefold(), text)


def _matches(cell_value: Any, target: Any) -> bool:
    """
    筛选匹配规则

    两边都是字符串时做忽略大小写的包含匹配；否则判断相等（数值按数值比较）。
    """
    if isinstance(target, str) and isinstance(cell_value, str):
        return target.casefold() in cell_value.casefold()

    num_cell, num_target = to_number(cell_value), to_number(target)
    if num_cell is not None and num_target is not None:
        return num_cell == num_target
    return cell_value == target


def _cell_at(row: List[Any], col: int) -> Any:
    """取出行中的单元格值（越界时为空字符串）"""
    return resolve_value(row[col]) if col < len(row) else ""


# ==================== 执行引擎 ====================


class Executor:
    """
    操作执行引擎

    每次执行都在文档副本上进行；失败时返回原文档对象，不做任何修改。
    """

    def __init__(
        self,
        document: SpreadsheetDocument,
        rng: Optional[random.Random] = None,
        width: Optional[int] = None,
    ):
        self.document = document
        self.rng = rng or random.Random()
        # 新增行的列数
        self.width = width or settings.SHEET_COLUMNS

    def execute(self, operations: List[Union[Operation, Dict[str, Any]]]) -> ExecutionResult:
        """顺序执行操作列表，每个操作基于上一个操作的结果"""
        result = ExecutionResult(document=self.document)

        for i, op in enumerate(operations):
            op_result = self.apply(op)
            result.results.append(op_result)
            if op_result.errors:
                for error in op_result.errors:
                    logger.warning(f"操作 #{i + 1} 未应用: {error}")
            else:
                self.document = op_result.document

        result.document = self.document
        return result

    def apply(self, operation: Union[Operation, Dict[str, Any]]) -> ApplyResult:
        """
        应用单个操作

        Args:
            operation: 操作对象，或 {"type": ..., "data": {...}} 格式的字典

        Returns:
            ApplyResult（不会抛出异常）
        """
        original = self.document

        if isinstance(operation, dict):
            op, errors = OperationParser.parse_operation(operation)
            if errors:
                return ApplyResult(document=original, operation=None, errors=errors)
        else:
            op = operation

        document = original.clone()
        sheet = document.get_active_sheet()

        try:
            self._execute_operation(op, sheet)
        except OperationFailed as e:
            return ApplyResult(document=original, operation=op, errors=[e.error])
        except Exception as e:
            logger.exception(f"执行操作出错: {op}")
            error = OperationError(getattr(op, "type", "unknown"), f"执行错误: {e}")
            return ApplyResult(document=original, operation=op, errors=[error])

        return ApplyResult(document=document, operation=op)

    def _execute_operation(self, op: Operation, sheet: Sheet):
        """按操作类型分发"""
        if isinstance(op, UpdateCellOperation):
            self._execute_update_cell(op, sheet)
        elif isinstance(op, AddFormulaOperation):
            self._execute_add_formula(op, sheet)
        elif isinstance(op, CreateChartOperation):
            self._execute_create_chart(op, sheet)
        elif isinstance(op, SortOperation):
            self._execute_sort(op, sheet)
        elif isinstance(op, FilterOperation):
            self._execute_filter(op, sheet)
        else:
            raise OperationFailed(OperationError("unknown", f"未知操作类型: {type(op).__name__}"))

    def _execute_update_cell(self, op: UpdateCellOperation, sheet: Sheet):
        """更新单元格（以 = 开头的字符串按公式计算）"""
        grid = grow_grid_to(sheet.data, op.row, op.col, self.width)

        if isinstance(op.value, str) and op.value.startswith("="):
            cell = formula_cell(op.value, grid)
        else:
            cell = AnnotatedCell(value=op.value, is_ai_generated=True)

        grid[op.row][op.col] = cell
        sheet.data = grid
        sheet.active_cell = CellAddress(op.row, op.col)
        logger.info(f"已更新单元格 ({op.row}, {op.col}): {cell.value!r}")

    def _execute_add_formula(self, op: AddFormulaOperation, sheet: Sheet):
        """写入公式（不以 = 开头的内容按普通文本写入）"""
        grid = grow_grid_to(sheet.data, op.row, op.col, self.width)

        if op.formula.startswith("="):
            cell = formula_cell(op.formula, grid)
        else:
            cell = AnnotatedCell(value=op.formula, is_ai_generated=True)

        grid[op.row][op.col] = cell
        sheet.data = grid
        sheet.active_cell = CellAddress(op.row, op.col)
        logger.info(f"已写入公式 ({op.row}, {op.col}): {op.formula} -> {cell.value!r}")

    def _execute_create_chart(self, op: CreateChartOperation, sheet: Sheet):
        """
        创建图表

        在锚点写入图表标记和标题，下方是 "Category | Value" 两列数据表。
        没有数据时生成 5 个占位分类，值为 [20, 120) 之间的随机整数。
        """
        points = list(op.data)
        if not points:
            points = [
                ChartPoint(name=f"Category {c}", value=self.rng.randint(20, 119))
                for c in PLACEHOLDER_CATEGORIES
            ]

        top, left = CHART_ANCHOR_ROW, CHART_ANCHOR_COL
        last_row = top + 1 + len(points)
        grid = sheet.data
        for r in range(top, last_row + 1):
            grid = grow_grid_to(grid, r, left + 1, self.width)

        grid[top][left] = AnnotatedCell(
            value=f"[{op.chart_type} Chart]",
            is_ai_generated=True,
            is_chart=True,
            chart_type=op.chart_type,
        )
        grid[top][left + 1] = AnnotatedCell(value=op.title, is_ai_generated=True, is_chart=True)

        header_row = top + 1
        grid[header_row][left] = AnnotatedCell(value="Category", is_ai_generated=True, is_chart_data=True)
        grid[header_row][left + 1] = AnnotatedCell(value="Value", is_ai_generated=True, is_chart_data=True)

        for i, point in enumerate(points):
            row = header_row + 1 + i
            grid[row][left] = AnnotatedCell(value=point.name, is_ai_generated=True, is_chart_data=True)
            grid[row][left + 1] = AnnotatedCell(value=point.value, is_ai_generated=True, is_chart_data=True)

        sheet.data = grid
        sheet.charts = sheet.charts + [ChartMeta(type=op.chart_type, title=op.title, data=tuple(points))]
        logger.info(f"已创建图表: {op.chart_type} '{op.title}' ({len(points)} 个数据点)")

    def _resolve_data_column(self, op: Union[SortOperation, FilterOperation], sheet: Sheet) -> int:
        """校验数据行数并解析列索引"""
        if sheet.row_count() < 2:
            raise OperationFailed(OperationError(op.type, "至少需要表头和一行数据"))
        try:
            return resolve_column(op.column, sheet.header())
        except ValueError as e:
            raise OperationFailed(OperationError(op.type, str(e), field="column"))

    def _execute_sort(self, op: SortOperation, sheet: Sheet):
        """按列升序排序（表头不动，稳定排序）"""
        col = self._resolve_data_column(op, sheet)

        header, *rows = sheet.data
        rows.sort(key=lambda row: sort_key(_cell_at(row, col)))

        sheet.data = [header] + rows
        logger.info(f"已按第 {col} 列排序 ({len(rows)} 行)")

    def _execute_filter(self, op: FilterOperation, sheet: Sheet):
        """按列筛选，只保留匹配的行（表头保留）"""
        col = self._resolve_data_column(op, sheet)

        header, *rows = sheet.data
        kept = [row for row in rows if _matches(_cell_at(row, col), op.value)]

        sheet.data = [header] + kept
        logger.info(f"已按第 {col} 列筛选 {op.value!r}: 保留 {len(kept)}/{len(rows)} 行")


# ==================== 便捷函数 ====================


def apply_operation(
    document: SpreadsheetDocument,
    operation: Union[Operation, Dict[str, Any]],
    rng: Optional[random.Random] = None,
) -> ApplyResult:
    """应用单个操作的便捷函数"""
    return Executor(document, rng).apply(operation)


def apply_operations(
    document: SpreadsheetDocument,
    operations: List[Union[Operation, Dict[str, Any]]],
    rng: Optional[random.Random] = None,
) -> ExecutionResult:
    """顺序应用多个操作的便捷函数"""
    return Executor(document, rng).execute(operations)
