"""函数库 - 区域展开与聚合函数"""

from typing import Any, Callable, Dict, List, Optional, Tuple

from excelbot.engine.addressing import cell_to_indices, is_cell_reference
from excelbot.engine.models import CellAddress, Grid, Number, is_blank, resolve_value, to_number


# ==================== 区域展开 ====================


def grid_bounds(grid: Grid) -> Tuple[int, int]:
    """网格的 (行数, 最大列数)"""
    return len(grid), max((len(row) for row in grid), default=0)


def expand_range(expr: str, bounds: Optional[Tuple[int, int]] = None) -> List[CellAddress]:
    """
    展开区域表达式为单元格坐标列表

    支持的格式:
    - 矩形区域: "A1:B3"（按行优先顺序枚举）
    - 单元格列表: "A1,B2,C3"（每一项也可以是矩形区域）
    - 单个单元格: "A1"

    起止颠倒的区域（如 "B3:A1"）会被规范化为正向区域。

    Args:
        expr: 区域表达式
        bounds: (行数, 列数)，给出时矩形区域只枚举与其相交的部分

    Returns:
        单元格坐标列表
    """
    expr = (expr or "").strip()
    if not expr:
        return []

    if "," in expr:
        addresses: List[CellAddress] = []
        for token in expr.split(","):
            addresses.extend(expand_range(token, bounds))
        return addresses

    if ":" in expr:
        start_ref, _, end_ref = expr.partition(":")
        start = cell_to_indices(start_ref)
        end = cell_to_indices(end_ref)

        top, bottom = sorted((start.row, end.row))
        left, right = sorted((start.col, end.col))
        if bounds is not None:
            bottom = min(bottom, bounds[0] - 1)
            right = min(right, bounds[1] - 1)

        return [
            CellAddress(row=r, col=c)
            for r in range(top, bottom + 1)
            for c in range(left, right + 1)
        ]

    return [cell_to_indices(expr)]


def is_range_expression(expr: str) -> bool:
    """判断是否是合法的区域/单元格列表表达式"""
    tokens = [t.strip() for part in (expr or "").split(",") for t in part.split(":")]
    return bool(tokens) and all(is_cell_reference(t) for t in tokens)


def collect_values(grid: Grid, addresses: List[CellAddress]) -> List[Any]:
    """
    收集区域内的单元格值

    越界的坐标会被跳过；带注解的单元格取 value。
    """
    values = []
    for address in addresses:
        if 0 <= address.row < len(grid) and 0 <= address.col < len(grid[address.row]):
            values.append(resolve_value(grid[address.row][address.col]))
    return values


# ==================== 聚合函数 ====================


def _numbers(values: List[Any]) -> List[Number]:
    """取出可解析为数值的值"""
    result = []
    for v in values:
        number = to_number(v)
        if number is not None:
            result.append(number)
    return result


def SUM(values: List[Any]) -> Number:
    """求和（非数值按 0 处理）"""
    return sum(_numbers(values))


def AVERAGE(values: List[Any]) -> Number:
    """平均值（没有数值时返回 0）"""
    nums = _numbers(values)
    if not nums:
        return 0
    return sum(nums) / len(nums)


def COUNT(values: List[Any]) -> int:
    """计数（非空）"""
    return sum(1 for v in values if not is_blank(v))


def MAX(values: List[Any]) -> Number:
    """最大值（没有数值时返回 0）"""
    nums = _numbers(values)
    return max(nums) if nums else 0


def MIN(values: List[Any]) -> Number:
    """最小值（没有数值时返回 0）"""
    nums = _numbers(values)
    return min(nums) if nums else 0


AGGREGATE_FUNC_MAP: Dict[str, Callable[[List[Any]], Number]] = {
    "SUM": SUM,
    "AVERAGE": AVERAGE,
    "COUNT": COUNT,
    "MAX": MAX,
    "MIN": MIN,
}
