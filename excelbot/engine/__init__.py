"""表格操作引擎 - 核心函数模块

包含表格助手的核心处理逻辑：
- addressing: 单元格寻址
- functions: 区域展开与聚合函数
- evaluator: 公式求值
- sheet: 文档创建与网格扩展
- parser: 操作解析与校验
- executor: 操作执行引擎
- extractor: 从 LLM 回复中提取操作
- prompt: LLM 提示词
- llm_client: LLM 客户端
- agent_session: 单次请求的 Agent 状态
- excel_parser / excel_writer: xlsx 读写
- models: 数据模型定义
"""

from excelbot.engine.models import (
    ExcelError,
    ERROR,
    DIV0,
    NUM,
    CellAddress,
    AnnotatedCell,
    Sheet,
    SpreadsheetDocument,
    UpdateCellOperation,
    AddFormulaOperation,
    CreateChartOperation,
    SortOperation,
    FilterOperation,
    Operation,
    OperationError,
    ApplyResult,
    ExecutionResult,
)
from excelbot.engine.addressing import (
    column_to_index,
    index_to_column,
    cell_to_indices,
    indices_to_cell,
)
from excelbot.engine.functions import expand_range
from excelbot.engine.evaluator import calculate_formula
from excelbot.engine.sheet import (
    create_empty_document,
    document_from_rows,
    grow_grid_to,
    export_snapshot,
    document_to_dict,
)
from excelbot.engine.parser import parse_operation, parse_operations
from excelbot.engine.executor import apply_operation, apply_operations
from excelbot.engine.extractor import extract_operation, extract_operations
from excelbot.engine.agent_session import AgentSession, AgentStatus

__all__ = [
    # Models
    "ExcelError",
    "ERROR",
    "DIV0",
    "NUM",
    "CellAddress",
    "AnnotatedCell",
    "Sheet",
    "SpreadsheetDocument",
    "UpdateCellOperation",
    "AddFormulaOperation",
    "CreateChartOperation",
    "SortOperation",
    "FilterOperation",
    "Operation",
    "OperationError",
    "ApplyResult",
    "ExecutionResult",
    # Addressing
    "column_to_index",
    "index_to_column",
    "cell_to_indices",
    "indices_to_cell",
    # Evaluator
    "expand_range",
    "calculate_formula",
    # Sheet
    "create_empty_document",
    "document_from_rows",
    "grow_grid_to",
    "export_snapshot",
    "document_to_dict",
    # Parser / Executor
    "parse_operation",
    "parse_operations",
    "apply_operation",
    "apply_operations",
    # Extractor
    "extract_operation",
    "extract_operations",
    # Agent Session
    "AgentSession",
    "AgentStatus",
]
