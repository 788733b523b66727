"""操作解析器 - 解析和校验 LLM 输出的操作描述"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from excelbot.engine.models import (
    AddFormulaOperation,
    ChartPoint,
    CreateChartOperation,
    FilterOperation,
    Operation,
    OperationError,
    SortOperation,
    UpdateCellOperation,
    to_number,
)

logger = logging.getLogger(__name__)


# ==================== 白名单定义 ====================

# 操作类型
VALID_TYPES = {"update_cell", "add_formula", "create_chart", "sort", "filter"}

# 图表类型
CHART_TYPES = {"bar", "line", "pie", "radar"}

# 图表最多使用的数据点
MAX_CHART_POINTS = 10


# ==================== 字段转换 ====================


def _loose_index(value: Any) -> Optional[int]:
    """
    宽松的行列索引转换

    接受非负整数、整数值的 float 和数字字符串，其余返回 None。
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value >= 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _strict_index(value: Any) -> Optional[int]:
    """严格的行列索引转换：只接受非负整数"""
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return None


# ==================== 解析器类 ====================


class OperationParser:
    """操作描述解析器"""

    @staticmethod
    def parse(json_str: str) -> Tuple[List[Operation], List[OperationError]]:
        """
        解析 JSON 字符串为操作列表

        接受单个操作对象、操作数组，或 {"operations": [...]} 包装。

        Args:
            json_str: JSON 格式的操作描述字符串

        Returns:
            (操作列表, 错误列表)
        """
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            return [], [OperationError("parse", f"JSON 解析错误: {e}")]

        if isinstance(data, dict) and "operations" in data:
            data = data["operations"]
        payloads = data if isinstance(data, list) else [data]

        operations = []
        errors = []
        for payload in payloads:
            op, op_errors = OperationParser.parse_operation(payload)
            errors.extend(op_errors)
            if op:
                operations.append(op)
        return operations, errors

    @staticmethod
    def parse_operation(
        payload: Dict[str, Any],
    ) -> Tuple[Optional[Operation], List[OperationError]]:
        """
        解析单个操作

        Args:
            payload: {"type": "...", "data": {...}}

        Returns:
            (操作对象, 错误列表)；校验失败时操作对象为 None
        """
        if not isinstance(payload, dict):
            return None, [OperationError("unknown", "操作必须是 JSON 对象")]

        op_type = payload.get("type")
        if not isinstance(op_type, str):
            return None, [OperationError("unknown", "缺少 'type' 字段", field="type")]
        if op_type not in VALID_TYPES:
            return None, [OperationError(op_type, f"无效的操作类型 '{op_type}'", field="type")]

        data = payload.get("data")
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return None, [OperationError(op_type, "'data' 必须是对象", field="data")]

        if op_type == "update_cell":
            return OperationParser._parse_update_cell(data)
        elif op_type == "add_formula":
            return OperationParser._parse_add_formula(data)
        elif op_type == "create_chart":
            return OperationParser._parse_create_chart(data)
        elif op_type == "sort":
            return OperationParser._parse_sort(data)
        elif op_type == "filter":
            return OperationParser._parse_filter(data)

        return None, [OperationError(op_type, f"未知操作类型 '{op_type}'", field="type")]

    @staticmethod
    def _parse_update_cell(
        data: Dict[str, Any],
    ) -> Tuple[Optional[UpdateCellOperation], List[OperationError]]:
        """解析 update_cell 操作（行列索引宽松转换）"""
        errors = []

        row = _loose_index(data.get("row"))
        col = _loose_index(data.get("col"))
        if row is None:
            errors.append(OperationError("update_cell", f"row 必须是非负整数: {data.get('row')!r}", field="row"))
        if col is None:
            errors.append(OperationError("update_cell", f"col 必须是非负整数: {data.get('col')!r}", field="col"))

        if errors:
            for error in errors:
                logger.warning(f"无效的 update_cell 操作: {error}")
            return None, errors

        value = data.get("value", "")
        if value is None:
            value = ""
        return UpdateCellOperation(row=row, col=col, value=value), []

    @staticmethod
    def _parse_add_formula(
        data: Dict[str, Any],
    ) -> Tuple[Optional[AddFormulaOperation], List[OperationError]]:
        """解析 add_formula 操作（行列索引必须是整数，公式不能为空）"""
        errors = []

        row = _strict_index(data.get("row"))
        col = _strict_index(data.get("col"))
        formula = data.get("formula")
        if row is None:
            errors.append(OperationError("add_formula", f"row 必须是非负整数: {data.get('row')!r}", field="row"))
        if col is None:
            errors.append(OperationError("add_formula", f"col 必须是非负整数: {data.get('col')!r}", field="col"))
        if not isinstance(formula, str) or not formula.strip():
            errors.append(OperationError("add_formula", "formula 必须是非空字符串", field="formula"))

        if errors:
            for error in errors:
                logger.error(f"无效的 add_formula 操作: {error}")
            return None, errors

        return AddFormulaOperation(row=row, col=col, formula=formula.strip()), []

    @staticmethod
    def _parse_create_chart(
        data: Dict[str, Any],
    ) -> Tuple[Optional[CreateChartOperation], List[OperationError]]:
        """解析 create_chart 操作"""
        errors = []

        chart_type = data.get("chartType")
        if not isinstance(chart_type, str) or not chart_type.strip():
            errors.append(OperationError("create_chart", "缺少 'chartType' 字段", field="chartType"))
        elif chart_type.strip().lower() not in CHART_TYPES:
            errors.append(OperationError(
                "create_chart",
                f"不支持的图表类型 '{chart_type}'，必须是 {', '.join(sorted(CHART_TYPES))} 之一",
                field="chartType",
            ))

        raw_points = data.get("data")
        if raw_points is None:
            raw_points = []
        if not isinstance(raw_points, list):
            errors.append(OperationError("create_chart", "data 必须是数组", field="data"))

        if errors:
            for error in errors:
                logger.error(f"无效的 create_chart 操作: {error}")
            return None, errors

        points = []
        for i, item in enumerate(raw_points[:MAX_CHART_POINTS]):
            item = item if isinstance(item, dict) else {}
            name = item.get("name")
            value = to_number(item.get("value"))
            points.append(ChartPoint(
                name=str(name) if name not in (None, "") else f"Item {i + 1}",
                value=value if value is not None else 0,
            ))

        title = data.get("title")
        op = CreateChartOperation(
            chart_type=chart_type.strip().lower(),
            title=str(title) if title not in (None, "") else "Chart",
            data=points,
        )
        return op, []

    @staticmethod
    def _parse_sort(
        data: Dict[str, Any],
    ) -> Tuple[Optional[SortOperation], List[OperationError]]:
        """解析 sort 操作"""
        column = data.get("column")
        if column is None or column == "" or isinstance(column, bool):
            return None, [OperationError("sort", "缺少 'column' 字段", field="column")]
        return SortOperation(column=column), []

    @staticmethod
    def _parse_filter(
        data: Dict[str, Any],
    ) -> Tuple[Optional[FilterOperation], List[OperationError]]:
        """解析 filter 操作"""
        errors = []

        column = data.get("column")
        if column is None or column == "" or isinstance(column, bool):
            errors.append(OperationError("filter", "缺少 'column' 字段", field="column"))
        if "value" not in data or data["value"] is None:
            errors.append(OperationError("filter", "缺少 'value' 字段", field="value"))

        if errors:
            return None, errors
        return FilterOperation(column=column, value=data["value"]), []


# ==================== 便捷函数 ====================


def parse_operation(payload: Dict[str, Any]) -> Tuple[Optional[Operation], List[OperationError]]:
    """解析单个操作的便捷函数"""
    return OperationParser.parse_operation(payload)


def parse_operations(json_str: str) -> Tuple[List[Operation], List[OperationError]]:
    """解析操作描述的便捷函数"""
    return OperationParser.parse(json_str)
