"""系统提示词 - 指导 LLM 输出表格操作"""

import json
import re
from typing import Any, Dict

from excelbot.engine.models import SpreadsheetDocument
from excelbot.engine.sheet import sheet_context


# ==================== 系统提示词 ====================

SYSTEM_PROMPT = """You are ExcelBot, an AI assistant specialized in helping users with Excel spreadsheets.
When working with Excel, provide clear formulas and operations that can be applied directly.
For calculations, use proper Excel formula syntax starting with '='.

Always include structured operations in your responses using this format:
EXCEL_OPERATION_START
{
  "type": "update_cell | add_formula | create_chart | sort | filter",
  "data": {
    // For update_cell: { row: number, col: number, value: any }
    // For add_formula: { row: number, col: number, formula: string }
    // For create_chart: { chartType: "bar|line|pie|radar", title: string, data: [{name: string, value: number}, ...] }
    // For sort: { column: "A" or number }
    // For filter: { column: "A" or number, value: any }
  }
}
EXCEL_OPERATION_END

IMPORTANT GUIDELINES FOR EXCEL OPERATIONS:
1. When updating cells or adding data:
   - ALWAYS use 0-based row/column indices (first row is 0, first column is 0)
   - Make sure to specify exact row/column numbers for ALL data
   - Avoid using relative references or placeholders
   - A1 = row:0, col:0; B3 = row:2, col:1

2. When working with charts:
   - Always specify the chart type: bar, line, pie, or radar
   - Provide a meaningful title for the chart
   - ALWAYS provide the actual data points for the chart in the 'data' array
   - Include at least 5 data points with realistic values

3. For formulas:
   - Always use the '=' prefix (like =SUM(A1:A10))
   - Make sure to provide sensible cell references
   - Supported formulas: SUM, AVERAGE, COUNT, MAX, MIN and arithmetic (+ - * /)

4. For sample data:
   - Always provide SPECIFIC data, not placeholders
   - Use realistic values for the user's task
"""


# ==================== 分类指导 ====================

CHART_GUIDELINES = """IMPORTANT GUIDELINES FOR CHART CREATION:
1. First analyze the data to determine what would make the most meaningful visualization
2. Select the appropriate chart type based on the data patterns:
   - Bar charts for comparing categories
   - Line charts for trends over time
   - Pie charts for showing proportions of a whole
   - Radar charts for comparing multiple variables
3. Choose the most relevant columns/rows that contain numeric data
4. Make sure to identify proper labels for data points

Your response MUST include a structured operation like this:

EXCEL_OPERATION_START
{
  "type": "create_chart",
  "data": {
    "chartType": "bar",
    "title": "Appropriate chart title",
    "data": [
      {"name": "Category 1", "value": 100},
      {"name": "Category 2", "value": 200}
    ]
  }
}
EXCEL_OPERATION_END

- Extract ACTUAL DATA from the sheet for visualization
- Ensure each data point has both a name and a numeric value
- Create at least 5 data points
- Make sure values are numeric (not strings)

After the JSON block, explain the chart and what it shows."""

CREATE_DATA_GUIDELINES = """IMPORTANT GUIDELINES FOR CREATING DATA:
1. First analyze the existing spreadsheet structure to understand its layout
2. Find an appropriate location for the new data:
   - Look for empty regions in the sheet: {empty_regions}
   - Avoid overwriting any existing data
   - If adding to an existing table, find the next empty row
3. If headers already exist, use them to guide what data to create
4. Create data that's consistent with any existing data patterns

Your response MUST include a series of structured operations, one block per cell:

EXCEL_OPERATION_START
{{
  "type": "update_cell",
  "data": {{"row": 0, "col": 0, "value": "Header text or cell value"}}
}}
EXCEL_OPERATION_END

- Provide MULTIPLE update_cell operations, one for EACH cell that needs data
- Use exact 0-based row/column indices (A1 = row:0, col:0; B3 = row:2, col:1)
- Generate at least 5-10 rows of realistic data

After the JSON blocks, explain the data you've created."""

GENERAL_GUIDELINES = """IMPORTANT GUIDELINES FOR EXCEL OPERATIONS:
1. First analyze the spreadsheet structure to understand its layout and data patterns
2. Look for existing data, headers, and already populated cells before placing new data
3. For calculations or results:
   - If updating existing tables, find the last row with data and append below it
   - For totals/summaries, place them at the bottom of their associated column
   - For new data, find an empty area ({empty_regions}) to avoid overwriting existing content
4. When adding formulas, ensure they reference the correct cell ranges based on actual data

Your response MUST include a structured operation in this format:

EXCEL_OPERATION_START
{{
  "type": "update_cell | add_formula | sort | filter",
  "data": {{ ... }}
}}
EXCEL_OPERATION_END

Be very specific about exact cell locations, values, and formulas.
Remember to use 0-based indices for rows and columns (A1 = row:0, col:0; B3 = row:2, col:1).
After the JSON block, explain the operation in natural language."""


# ==================== 请求分类 ====================

CHART_REQUEST = re.compile(
    r"chart|graph|plot|visual|pie|bar|line|radar|histogram|scatter|area",
    re.IGNORECASE,
)

CREATE_DATA_KEYWORDS = ("create", "generate data", "sample data")


def classify_request(command: str) -> str:
    """
    判断用户请求的类别

    Returns:
        "chart" | "create_data" | "general"
    """
    if CHART_REQUEST.search(command or ""):
        return "chart"
    lowered = (command or "").lower()
    if any(keyword in lowered for keyword in CREATE_DATA_KEYWORDS):
        return "create_data"
    return "general"


def _to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def build_operation_prompt(command: str, document: SpreadsheetDocument) -> str:
    """
    构建包含表格结构信息的操作提示词

    Args:
        command: 用户的自然语言请求
        document: 当前文档（使用活动工作表）

    Returns:
        发送给 LLM 的用户消息
    """
    context: Dict[str, Any] = sheet_context(document)
    empty_regions = _to_json(context["emptyRegions"])
    kind = classify_request(command)

    parts = [f"I have an Excel spreadsheet with the following data structure:\n{_to_json(context)}"]

    if kind == "chart":
        parts.append(f"I want to create a chart: {command}")
        parts.append(CHART_GUIDELINES)
    elif kind == "create_data":
        parts.append(f"I want to: {command}")
        parts.append(CREATE_DATA_GUIDELINES.format(empty_regions=empty_regions))
    else:
        parts.append(f"Sample data from the active sheet:\n{_to_json(context['sampleData'])}")
        parts.append(f"I want to: {command}")
        parts.append(GENERAL_GUIDELINES.format(empty_regions=empty_regions))

    return "\n\n".join(parts)
