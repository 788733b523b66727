"""数据模型 - 定义系统中的基础数据类型"""

import math
from dataclasses import dataclass, field, replace
from typing import Union, List, Dict, Any, Optional


# ==================== Excel 错误类型 ====================


class ExcelError(Exception):
    """Excel 错误值（作为公式计算结果返回，而不是抛出）"""

    def __init__(self, code: str, detail: str = ""):
        self.code = code
        self.detail = detail
        super().__init__(code)

    def __repr__(self):
        return self.code

    def __str__(self):
        return self.code

    def __eq__(self, other):
        if isinstance(other, ExcelError):
            return self.code == other.code
        return False

    def __hash__(self):
        return hash(self.code)


# 预定义 Excel 错误
ERROR = ExcelError("#ERROR!")
DIV0 = ExcelError("#DIV/0!")
NUM = ExcelError("#NUM!")


# ==================== 基础类型定义 ====================

Number = Union[int, float]
Primitive = Union[str, int, float]


@dataclass(frozen=True)
class CellAddress:
    """单元格坐标（行列均从 0 开始）"""

    row: int
    col: int


@dataclass(frozen=True)
class AnnotatedCell:
    """
    带注解的单元格

    value 是显示/计算后的值；formula 保存原始公式文本（以 = 开头）。
    不可变，快照之间可以安全共享。
    """

    value: Any = ""
    formula: Optional[str] = None
    is_ai_generated: bool = False
    is_chart: bool = False
    chart_type: Optional[str] = None
    is_chart_data: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """转换为对外的字典格式（camelCase 键名）"""
        result: Dict[str, Any] = {"value": self.value}
        if self.formula is not None:
            result["formula"] = self.formula
        if self.is_ai_generated:
            result["isAIGenerated"] = True
        if self.is_chart:
            result["isChart"] = True
        if self.chart_type is not None:
            result["chartType"] = self.chart_type
        if self.is_chart_data:
            result["isChartData"] = True
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnnotatedCell":
        """从对外的字典格式还原"""
        return cls(
            value=data.get("value", ""),
            formula=data.get("formula"),
            is_ai_generated=bool(data.get("isAIGenerated", False)),
            is_chart=bool(data.get("isChart", False)),
            chart_type=data.get("chartType"),
            is_chart_data=bool(data.get("isChartData", False)),
        )


Cell = Union[Primitive, AnnotatedCell]
Row = List[Cell]
Grid = List[Row]


# ==================== 单元格辅助函数 ====================


def resolve_value(cell: Any) -> Any:
    """取出单元格的原始值（带注解的单元格取 value）"""
    if isinstance(cell, AnnotatedCell):
        return cell.value
    if isinstance(cell, dict):
        return cell.get("value")
    return cell


def is_blank(value: Any) -> bool:
    """是否为空值"""
    return value is None or value == ""


def to_number(value: Any) -> Optional[Number]:
    """
    尝试将值解析为数值

    数值（不含 bool）原样返回；字符串需要完整解析为有限数值。

    Returns:
        数值，无法解析时返回 None
    """
    value = resolve_value(value)

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text or "_" in text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def format_number(value: Number) -> str:
    """数值格式化（整数值的 float 不带小数部分）"""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def display_value(cell: Any, show_formula: bool = False) -> str:
    """
    单元格的显示字符串

    Args:
        cell: 单元格
        show_formula: 带公式的单元格是否显示公式文本
    """
    if isinstance(cell, AnnotatedCell) and show_formula and cell.formula:
        return cell.formula

    value = resolve_value(cell)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


# ==================== 表格结构 ====================


@dataclass(frozen=True)
class ChartPoint:
    """图表数据点"""

    name: str
    value: Number


@dataclass(frozen=True)
class ChartMeta:
    """图表描述（供渲染层使用）"""

    type: str
    title: str
    data: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "data": [{"name": p.name, "value": p.value} for p in self.data],
        }


@dataclass
class Sheet:
    """工作表 - 网格数据及其界面状态"""

    data: Grid = field(default_factory=list)
    active_cell: Optional[CellAddress] = None
    charts: List[ChartMeta] = field(default_factory=list)

    def row_count(self) -> int:
        """行数"""
        return len(self.data)

    def column_count(self) -> int:
        """最宽一行的列数"""
        return max((len(row) for row in self.data), default=0)

    def header(self) -> Row:
        """表头行（第 0 行）"""
        return list(self.data[0]) if self.data else []

    def get_cell(self, row: int, col: int) -> Cell:
        """获取单元格，越界时返回空值"""
        if 0 <= row < len(self.data) and 0 <= col < len(self.data[row]):
            return self.data[row][col]
        return ""

    def clone(self) -> "Sheet":
        """复制网格结构（单元格不可变，直接共享）"""
        return Sheet(
            data=[list(row) for row in self.data],
            active_cell=self.active_cell,
            charts=list(self.charts),
        )


@dataclass
class SpreadsheetDocument:
    """多工作表文档"""

    sheets: Dict[str, Sheet]
    active_sheet: str

    def __post_init__(self):
        if not self.sheets:
            raise ValueError("文档至少需要包含一个工作表")
        if self.active_sheet not in self.sheets:
            raise ValueError(f"活动工作表不存在: {self.active_sheet}")

    def get_active_sheet(self) -> Sheet:
        """获取当前活动工作表"""
        return self.sheets[self.active_sheet]

    def get_sheet(self, name: str) -> Sheet:
        """获取指定工作表"""
        if name not in self.sheets:
            raise ValueError(f"工作表不存在: {name}")
        return self.sheets[name]

    def get_sheet_names(self) -> List[str]:
        """获取所有工作表名称"""
        return list(self.sheets.keys())

    def with_active_sheet(self, name: str) -> "SpreadsheetDocument":
        """返回切换活动工作表后的新文档"""
        if name not in self.sheets:
            raise ValueError(f"工作表不存在: {name}")
        return replace(self.clone(), active_sheet=name)

    def clone(self) -> "SpreadsheetDocument":
        """返回与当前文档互不影响的副本"""
        return SpreadsheetDocument(
            sheets={name: sheet.clone() for name, sheet in self.sheets.items()},
            active_sheet=self.active_sheet,
        )

    def __repr__(self):
        sheets = {name: f"{s.row_count()}x{s.column_count()}" for name, s in self.sheets.items()}
        return f"SpreadsheetDocument(active_sheet='{self.active_sheet}', sheets={sheets})"


# ==================== 操作定义 ====================


@dataclass
class UpdateCellOperation:
    """更新单元格"""

    row: int
    col: int
    value: Any = ""

    type = "update_cell"

    def to_payload(self) -> Dict[str, Any]:
        return {"type": self.type, "data": {"row": self.row, "col": self.col, "value": self.value}}


@dataclass
class AddFormulaOperation:
    """写入公式"""

    row: int
    col: int
    formula: str

    type = "add_formula"

    def to_payload(self) -> Dict[str, Any]:
        return {"type": self.type, "data": {"row": self.row, "col": self.col, "formula": self.formula}}


@dataclass
class CreateChartOperation:
    """创建图表"""

    chart_type: str
    title: str = "Chart"
    data: List[ChartPoint] = field(default_factory=list)

    type = "create_chart"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "data": {
                "chartType": self.chart_type,
                "title": self.title,
                "data": [{"name": p.name, "value": p.value} for p in self.data],
            },
        }


@dataclass
class SortOperation:
    """按列排序（表头行保持不动）"""

    column: Union[str, int]

    type = "sort"

    def to_payload(self) -> Dict[str, Any]:
        return {"type": self.type, "data": {"column": self.column}}


@dataclass
class FilterOperation:
    """按列筛选（会替换工作表数据）"""

    column: Union[str, int]
    value: Any

    type = "filter"

    def to_payload(self) -> Dict[str, Any]:
        return {"type": self.type, "data": {"column": self.column, "value": self.value}}


# 操作类型联合
Operation = Union[
    UpdateCellOperation,
    AddFormulaOperation,
    CreateChartOperation,
    SortOperation,
    FilterOperation,
]


# ==================== 执行结果 ====================


@dataclass
class OperationError:
    """结构化的操作错误"""

    operation_type: str
    message: str
    field: Optional[str] = None

    def __str__(self):
        if self.field:
            return f"{self.operation_type}.{self.field}: {self.message}"
        return f"{self.operation_type}: {self.message}"


@dataclass
class ApplyResult:
    """单个操作的执行结果"""

    document: SpreadsheetDocument
    operation: Optional[Operation] = None
    errors: List[OperationError] = field(default_factory=list)

    @property
    def applied(self) -> bool:
        """操作是否成功应用"""
        return self.operation is not None and not self.errors


@dataclass
class ExecutionResult:
    """多个操作顺序执行的结果汇总"""

    document: SpreadsheetDocument
    results: List[ApplyResult] = field(default_factory=list)

    @property
    def errors(self) -> List[OperationError]:
        """所有错误"""
        return [error for result in self.results for error in result.errors]

    @property
    def applied_count(self) -> int:
        """成功应用的操作数"""
        return sum(1 for result in self.results if result.applied)

    def has_errors(self) -> bool:
        """是否有错误"""
        return len(self.errors) > 0
