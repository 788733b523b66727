"""操作提取器 - 从 LLM 回复文本中提取操作描述"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from excelbot.engine.addressing import cell_to_indices
from excelbot.engine.models import to_number

logger = logging.getLogger(__name__)


OPERATION_START = "EXCEL_OPERATION_START"
OPERATION_END = "EXCEL_OPERATION_END"

_BLOCK = re.compile(rf"{OPERATION_START}\s*(.*?)\s*{OPERATION_END}", re.DOTALL)
_CODE_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_LINE_NUMBER = re.compile(r"^\s*\d+[\s:]*", re.MULTILINE)

# 文本中零散出现的 update_cell 对象
_LOOSE_UPDATE_CELL = re.compile(
    r'\{\s*"type"\s*:\s*"update_cell"\s*,\s*"data"\s*:\s*\{\s*"row"\s*:\s*\d+\s*,'
    r'\s*"col"\s*:\s*\d+\s*,\s*"value"\s*:\s*(?:"[^"]*"|-?\d+(?:\.\d+)?|true|false|null)\s*\}\s*\}'
)

# 未加引号的键名、结尾多余的逗号
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_]\w*)(\s*):")
_TRAILING_COMMA = re.compile(r",(\s*[\]}])")

# 没有指定单元格时公式结果的默认位置
DEFAULT_RESULT_CELL = (10, 1)

SAMPLE_CHART_DATA = [
    {"name": "Sample 1", "value": 30},
    {"name": "Sample 2", "value": 50},
    {"name": "Sample 3", "value": 70},
    {"name": "Sample 4", "value": 90},
    {"name": "Sample 5", "value": 40},
]


# ==================== 工具函数 ====================


def fix_common_json_errors(text: str) -> str:
    """
    修复 LLM 输出中常见的 JSON 格式问题

    - 给未加引号的键名加上双引号
    - 单引号替换为双引号
    - 删除 ] 或 } 之前多余的逗号
    """
    fixed = _BARE_KEY.sub(r'\1"\2"\3:', text)
    fixed = fixed.replace("'", '"')
    fixed = _TRAILING_COMMA.sub(r"\1", fixed)
    return fixed


def coerce_value(value: Any) -> Any:
    """数值形式的字符串转为数值，其他值原样返回"""
    if isinstance(value, str):
        number = to_number(value)
        if number is not None:
            return number
    return value


def _clean_value(text: str) -> str:
    """去掉首尾空白和句末标点"""
    return text.strip().rstrip(".!;,").strip()


def _as_operations(data: Any) -> List[Dict[str, Any]]:
    """将解析结果整理为操作字典列表（只接受带字符串 type 的对象）"""
    if isinstance(data, dict) and isinstance(data.get("operations"), list):
        data = data["operations"]
    items = data if isinstance(data, list) else [data]
    return [item for item in items if isinstance(item, dict) and isinstance(item.get("type"), str)]


# ==================== 结构化提取 ====================


def parse_block(content: str) -> Optional[Any]:
    """
    解析一个操作块的内容

    依次尝试：原文、去掉行号后的文本、修复常见错误后的文本。

    Returns:
        解析后的 JSON 值；全部失败时返回 None
    """
    content = _CODE_FENCE.sub("", content).strip()
    candidates = [content]

    without_numbers = _LINE_NUMBER.sub("", content)
    if without_numbers != content:
        candidates.append(without_numbers)

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except (json.JSONDecodeError, RecursionError):
            logger.debug(f"操作块不是合法 JSON，尝试其他形式: {candidate[:80]!r}")

    repaired = fix_common_json_errors(candidates[-1])
    try:
        return json.loads(repaired)
    except (json.JSONDecodeError, RecursionError) as e:
        logger.warning(f"修复后的操作块仍无法解析: {e}")
        return None


def extract_structured(text: str) -> List[Dict[str, Any]]:
    """提取所有 EXCEL_OPERATION_START ... EXCEL_OPERATION_END 块中的操作"""
    operations = []
    for match in _BLOCK.finditer(text or ""):
        data = parse_block(match.group(1))
        if data is not None:
            operations.extend(_as_operations(data))
    return operations


def extract_loose(text: str) -> List[Dict[str, Any]]:
    """提取正文中零散出现的 update_cell JSON 对象"""
    operations = []
    for match in _LOOSE_UPDATE_CELL.finditer(text or ""):
        try:
            operations.extend(_as_operations(json.loads(match.group(0))))
        except (json.JSONDecodeError, RecursionError):
            logger.debug(f"无法解析的 update_cell 对象: {match.group(0)!r}")
    return operations


# ==================== 启发式识别 ====================

_CHART = re.compile(r"\bcreate\s+(?:a|an)\s+(bar|line|pie|radar)\s+chart", re.IGNORECASE)
_CHART_TITLE = re.compile(r"\btitle\s*[:=]\s*[\"']?([^\"'\n]+)[\"']?", re.IGNORECASE)
_CHART_DATA_ARRAY = re.compile(r"\bdata\s*:\s*\[(.*?)\]", re.IGNORECASE | re.DOTALL)
_CHART_DATA_ITEM = re.compile(
    r"\{\s*[\"']?name[\"']?\s*:\s*[\"']?([^\"',}]+)[\"']?\s*,\s*[\"']?value[\"']?\s*:\s*(-?\d+(?:\.\d+)?)"
)
_CHART_DATA_LINE = re.compile(r"^\s*(?:[-*]\s*)?([A-Za-z][\w ]*?)\s*[:|-]\s*(-?\d+(?:\.\d+)?)\s*$", re.MULTILINE)

_FORMULA = re.compile(r"=\s*([A-Za-z]+\s*\([^)]*\))")
_FUNCTION_CALL = re.compile(r"\b(SUM|AVERAGE|COUNT|MAX|MIN)\s*\(([^)]+)\)", re.IGNORECASE)
_TARGET_CELL = re.compile(r"\b(?:in|to|into)\s+cell\s+([A-Za-z]+\d+)", re.IGNORECASE)

_SET_CELL = re.compile(
    r"\b(?:set|put|update)\s+(?:cell\s+)?([A-Za-z]+\d+)\s+(?:to|with|as|=)\s+[\"']?([^\"'\n]+)[\"']?",
    re.IGNORECASE,
)
_PUT_IN_CELL = re.compile(
    r"\b(?:put|place|enter|insert|add)\s+[\"']?([^\"'\n]+?)[\"']?\s+in(?:to)?\s+cell\s+([A-Za-z]+\d+)",
    re.IGNORECASE,
)

_SORT = re.compile(
    r"\bsort\b(?:\s+\w+){0,3}?\s+by\s+(?:column\s+)?[\"']?(\w+)|\bsort\s+column\s+[\"']?(\w+)",
    re.IGNORECASE,
)
_FILTER = re.compile(
    r"\bfilter\s+(?:by|where)\s+(?:column\s+)?[\"']?(\w+)[\"']?\s+(?:is|=|equals|contains)\s+[\"']?([^\"'\n]+)[\"']?",
    re.IGNORECASE,
)

_CELL_VALUE_PAIR = re.compile(r"\b([A-Z]+\d+)\s*[:=]\s*[\"']?([^\"',\n]+)[\"']?")


def _cell_op(cell_ref: str, value: str) -> Dict[str, Any]:
    """由单元格标识和值构造操作（以 = 开头的值作为公式）"""
    address = cell_to_indices(cell_ref)
    if value.startswith("="):
        return {"type": "add_formula", "data": {"row": address.row, "col": address.col, "formula": value}}
    return {"type": "update_cell", "data": {"row": address.row, "col": address.col, "value": coerce_value(value)}}


def chart_data_points(text: str) -> List[Dict[str, Any]]:
    """从文本中提取图表数据点（data: [...] 数组或 "名称: 数值" 行）"""
    points = []

    array_match = _CHART_DATA_ARRAY.search(text)
    if array_match:
        for name, value in _CHART_DATA_ITEM.findall(array_match.group(1)):
            points.append({"name": name.strip(), "value": coerce_value(value)})

    if not points:
        for name, value in _CHART_DATA_LINE.findall(text):
            if name.strip().lower() == "title":
                continue
            points.append({"name": name.strip(), "value": coerce_value(value)})

    return points


def match_chart(text: str) -> Optional[Dict[str, Any]]:
    """识别 "create a bar/line/pie/radar chart" """
    match = _CHART.search(text)
    if not match:
        return None

    title_match = _CHART_TITLE.search(text)
    title = title_match.group(1).strip() if title_match else "Chart"

    return {
        "type": "create_chart",
        "data": {
            "chartType": match.group(1).lower(),
            "title": title,
            "data": chart_data_points(text) or [dict(p) for p in SAMPLE_CHART_DATA],
        },
    }


def suggest_cell_for_result(text: str) -> Tuple[int, int]:
    """公式结果的目标位置："in cell X" 指定的单元格，否则使用默认位置"""
    match = _TARGET_CELL.search(text)
    if match:
        address = cell_to_indices(match.group(1))
        return address.row, address.col
    return DEFAULT_RESULT_CELL


def match_formula(text: str) -> Optional[Dict[str, Any]]:
    """识别 =FUNC(...) 形式的公式，或 SUM(A1:A3) 这样的函数调用"""
    match = _FORMULA.search(text)
    if match:
        formula = "=" + re.sub(r"\s+", "", match.group(1))
    else:
        call = _FUNCTION_CALL.search(text)
        if not call:
            return None
        formula = f"={call.group(1).upper()}({call.group(2).strip()})"

    row, col = suggest_cell_for_result(text)
    return {"type": "add_formula", "data": {"row": row, "col": col, "formula": formula}}


def match_cell_update(text: str) -> Optional[Dict[str, Any]]:
    """识别 "set B2 to 42" 和 "put 42 in cell B2" """
    match = _SET_CELL.search(text)
    if match:
        return _cell_op(match.group(1), _clean_value(match.group(2)))

    match = _PUT_IN_CELL.search(text)
    if match:
        value = _clean_value(match.group(1))
        address = cell_to_indices(match.group(2))
        return {
            "type": "update_cell",
            "data": {"row": address.row, "col": address.col, "value": coerce_value(value)},
        }
    return None


def match_sort(text: str) -> Optional[Dict[str, Any]]:
    """识别 "sort by column X" """
    match = _SORT.search(text)
    if not match:
        return None
    column = match.group(1) or match.group(2)
    return {"type": "sort", "data": {"column": coerce_value(column)}}


def match_filter(text: str) -> Optional[Dict[str, Any]]:
    """识别 "filter by/where column X is/contains Y" """
    match = _FILTER.search(text)
    if not match:
        return None
    return {
        "type": "filter",
        "data": {
            "column": coerce_value(match.group(1)),
            "value": coerce_value(_clean_value(match.group(2))),
        },
    }


def match_data_entry(text: str) -> Optional[Dict[str, Any]]:
    """
    识别数据录入

    Markdown 表格取第一个表头单元格写入 A1；否则取第一个 "A1: 值" 形式的键值对。
    """
    table_rows = [line.strip() for line in text.splitlines() if line.strip().startswith("|")]
    if len(table_rows) > 2:
        cells = [cell.strip() for cell in table_rows[0].strip("|").split("|")]
        if cells and cells[0]:
            return {"type": "update_cell", "data": {"row": 0, "col": 0, "value": coerce_value(cells[0])}}

    match = _CELL_VALUE_PAIR.search(text)
    if match:
        return _cell_op(match.group(1), _clean_value(match.group(2)))
    return None


# 按优先级排列，第一个匹配的生效
HEURISTICS: List[Tuple[str, Callable[[str], Optional[Dict[str, Any]]]]] = [
    ("chart", match_chart),
    ("formula", match_formula),
    ("cell_update", match_cell_update),
    ("sort", match_sort),
    ("filter", match_filter),
    ("data_entry", match_data_entry),
]


def detect_operation(text: str, query: str = "") -> Optional[Dict[str, Any]]:
    """
    启发式识别操作

    按 HEURISTICS 的顺序，每个规则先匹配回复文本，再匹配用户原始请求。
    """
    sources = [s for s in (text, query) if s]
    for name, matcher in HEURISTICS:
        for source in sources:
            operation = matcher(source)
            if operation:
                logger.debug(f"启发式规则 '{name}' 识别到操作: {operation}")
                return operation
    return None


# ==================== 提取器类 ====================


class OperationExtractor:
    """从 LLM 回复中提取操作"""

    @staticmethod
    def extract_all(text: str, query: str = "") -> List[Dict[str, Any]]:
        """
        提取所有操作

        优先级：结构化操作块 > 零散的 update_cell 对象 > 启发式识别（最多一个）
        """
        operations = extract_structured(text)
        if operations:
            logger.debug(f"从操作块中提取到 {len(operations)} 个操作")
            return operations

        operations = extract_loose(text)
        if operations:
            logger.debug(f"从正文中提取到 {len(operations)} 个 update_cell 操作")
            return operations

        operation = detect_operation(text or "", query or "")
        return [operation] if operation else []

    @staticmethod
    def extract(text: str, query: str = "") -> Optional[Dict[str, Any]]:
        """提取第一个操作，没有时返回 None"""
        operations = OperationExtractor.extract_all(text, query)
        return operations[0] if operations else None


# ==================== 便捷函数 ====================


def extract_operation(text: str, query: str = "") -> Optional[Dict[str, Any]]:
    """提取单个操作的便捷函数"""
    return OperationExtractor.extract(text, query)


def extract_operations(text: str, query: str = "") -> List[Dict[str, Any]]:
    """提取所有操作的便捷函数"""
    return OperationExtractor.extract_all(text, query)
