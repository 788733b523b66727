"""表格模型 - 文档创建、网格扩展与快照导出"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from excelbot.engine.addressing import column_to_index, index_to_column
from excelbot.engine.models import (
    AnnotatedCell,
    Cell,
    Grid,
    Sheet,
    SpreadsheetDocument,
    display_value,
    is_blank,
    resolve_value,
)


# 新建行的标准列数
STANDARD_WIDTH = 15
DEFAULT_ROWS = 20
DEFAULT_SHEET_NAME = "Sheet 1"


# ==================== 文档创建 ====================


def create_empty_document(
    columns: int = STANDARD_WIDTH,
    rows: int = DEFAULT_ROWS,
    name: str = DEFAULT_SHEET_NAME,
) -> SpreadsheetDocument:
    """
    创建空白文档

    第 0 行是列字母表头（A, B, C, ...），其后是 rows 行空白行。

    Args:
        columns: 列数
        rows: 空白行数
        name: 工作表名称

    Returns:
        只包含一个工作表的文档
    """
    header: List[Cell] = [index_to_column(i) for i in range(columns)]
    data: Grid = [header] + [[""] * columns for _ in range(rows)]
    return SpreadsheetDocument(sheets={name: Sheet(data=data)}, active_sheet=name)


def document_from_rows(
    sheets: Mapping[str, Sequence[Sequence[Any]]],
    active_sheet: Optional[str] = None,
) -> SpreadsheetDocument:
    """
    由导入数据（工作表名 -> 行列表）创建文档

    None 转为空字符串，其余值原样保留。

    Args:
        sheets: {"Sheet1": [[...], [...]], ...}
        active_sheet: 活动工作表（默认第一个）
    """
    if not sheets:
        raise ValueError("导入数据中没有工作表")

    doc_sheets = {
        name: Sheet(data=[["" if v is None else v for v in row] for row in rows])
        for name, rows in sheets.items()
    }
    active = active_sheet if active_sheet is not None else next(iter(doc_sheets))
    return SpreadsheetDocument(sheets=doc_sheets, active_sheet=active)


def add_sheet(
    document: SpreadsheetDocument,
    name: str,
    rows: Sequence[Sequence[Any]],
    activate: bool = True,
) -> SpreadsheetDocument:
    """
    返回添加（或替换）一个工作表后的新文档

    同名工作表会被替换。
    """
    new_doc = document.clone()
    new_doc.sheets[name] = Sheet(data=[["" if v is None else v for v in row] for row in rows])
    if activate:
        new_doc.active_sheet = name
    return new_doc


# ==================== 网格扩展 ====================


def grow_grid_to(grid: Grid, row: int, col: int, width: int = STANDARD_WIDTH) -> Grid:
    """
    扩展网格使 (row, col) 存在

    缺失的行补充为 width 列的空白行；目标行补齐到 col 列。
    不修改传入的网格，不截断任何数据，重复调用结果相同。

    Args:
        grid: 原网格
        row: 目标行
        col: 目标列
        width: 新增行的列数

    Returns:
        新网格
    """
    if row < 0 or col < 0:
        raise ValueError(f"坐标不能为负数: ({row}, {col})")

    new_grid = [list(r) for r in grid]
    while len(new_grid) <= row:
        new_grid.append([""] * width)

    target = new_grid[row]
    if len(target) <= col:
        target.extend([""] * (col + 1 - len(target)))

    return new_grid


# ==================== 快照导出 ====================


def export_cell(cell: Cell) -> Any:
    """带注解的单元格转为显示用的原始值"""
    if isinstance(cell, AnnotatedCell):
        return cell.value if cell.value is not None else display_value(cell, show_formula=True)
    return cell


def export_snapshot(document: SpreadsheetDocument) -> Dict[str, List[List[Any]]]:
    """
    导出所有工作表为原始值的行列表（供文件编解码使用）

    Returns:
        {"工作表名": [[...], ...], ...}
    """
    return {
        name: [[export_cell(cell) for cell in row] for row in sheet.data]
        for name, sheet in document.sheets.items()
    }


def document_to_dict(document: SpreadsheetDocument) -> Dict[str, Any]:
    """文档转换为对外的字典格式（供渲染层使用）"""
    sheets = {}
    for name, sheet in document.sheets.items():
        entry: Dict[str, Any] = {
            "data": [
                [cell.to_dict() if isinstance(cell, AnnotatedCell) else cell for cell in row]
                for row in sheet.data
            ],
        }
        if sheet.active_cell is not None:
            entry["activeCell"] = {"row": sheet.active_cell.row, "col": sheet.active_cell.col}
        if sheet.charts:
            entry["charts"] = [chart.to_dict() for chart in sheet.charts]
        sheets[name] = entry
    return {"activeSheet": document.active_sheet, "sheets": sheets}


# ==================== 列定位 ====================


def resolve_column(column: Union[str, int], header: Sequence[Cell]) -> int:
    """
    将列标识解析为从 0 开始的列索引

    解析顺序:
    1. 整数：直接使用
    2. 数字字符串："2" -> 2
    3. 与表头某一格相同（忽略大小写）：使用该列
    4. 纯字母：按列字母解析（"B" -> 1）

    Raises:
        ValueError: 无法解析或为负数
    """
    if isinstance(column, bool):
        raise ValueError(f"无效的列标识: {column!r}")

    if isinstance(column, int):
        if column < 0:
            raise ValueError(f"列索引不能为负数: {column}")
        return column

    if isinstance(column, float) and column.is_integer() and column >= 0:
        return int(column)

    if not isinstance(column, str) or not column.strip():
        raise ValueError(f"无效的列标识: {column!r}")

    text = column.strip()
    if text.isdigit():
        return int(text)

    wanted = text.casefold()
    for index, cell in enumerate(header):
        if display_value(cell).strip().casefold() == wanted:
            return index

    if text.isascii() and text.isalpha():
        return column_to_index(text)

    raise ValueError(f"找不到列: {column!r}")


# ==================== 上下文信息 ====================


def _is_empty_at(grid: Grid, row: int, col: int) -> bool:
    if row >= len(grid) or col >= len(grid[row]):
        return True
    return is_blank(resolve_value(grid[row][col]))


def find_empty_regions(
    grid: Grid,
    max_rows: int = 30,
    max_cols: int = 10,
    min_size: int = 3,
) -> List[Dict[str, int]]:
    """
    查找表格左上区域中的矩形空白区域

    从每个空单元格出发，向下最多看 10 行、向右最多看 5 列，
    两个方向都不小于 min_size 时记为一个空白区域。
    """
    row_count = len(grid)
    col_count = max((len(r) for r in grid), default=0)
    regions = []

    for row in range(min(max_rows, row_count)):
        col = 0
        while col < min(max_cols, col_count):
            if _is_empty_at(grid, row, col):
                row_span = 0
                for r in range(row, min(row + 10, row_count)):
                    if not _is_empty_at(grid, r, col):
                        break
                    row_span += 1

                col_span = 0
                for c in range(col, min(col + 5, col_count)):
                    if not _is_empty_at(grid, row, c):
                        break
                    col_span += 1

                if row_span >= min_size and col_span >= min_size:
                    regions.append({
                        "startRow": row,
                        "startCol": col,
                        "rowSpan": row_span,
                        "colSpan": col_span,
                    })
                    col += col_span
                    continue
            col += 1

    return regions


def sheet_context(document: SpreadsheetDocument, sample_rows: int = 10) -> Dict[str, Any]:
    """
    生成活动工作表的结构信息（用于提示词）

    Returns:
        {
            "activeSheet": str,
            "rowCount": int,
            "columnCount": int,
            "headerRow": [...],
            "sampleData": [[...], ...],
            "lastDataRowByColumn": [int, ...],   # -1 表示该列没有数据
            "emptyRegions": [{...}, ...]         # 最多 3 个
        }
    """
    sheet = document.get_active_sheet()
    grid = sheet.data
    row_count = sheet.row_count()
    column_count = sheet.column_count()

    last_rows = []
    for col in range(column_count):
        last = -1
        for row in range(row_count - 1, -1, -1):
            if not _is_empty_at(grid, row, col):
                last = row
                break
        last_rows.append(last)

    return {
        "activeSheet": document.active_sheet,
        "rowCount": row_count,
        "columnCount": column_count,
        "headerRow": [export_cell(c) for c in sheet.header()],
        "sampleData": [[export_cell(c) for c in row] for row in grid[:sample_rows]],
        "lastDataRowByColumn": last_rows,
        "emptyRegions": find_empty_regions(grid)[:3],
    }
