"""Excel 解析器 - 负责读取 Excel 文件并转换为表格文档"""

import io
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from excelbot.engine.models import SpreadsheetDocument
from excelbot.engine.sheet import document_from_rows

logger = logging.getLogger(__name__)


SUPPORTED_SUFFIXES = [".xlsx", ".xlsm"]


class ExcelParser:
    """Excel 文件解析器"""

    # ========= 本地文件解析 =========

    @staticmethod
    def parse_file(file_path: Union[str, Path], active_sheet: Optional[str] = None) -> SpreadsheetDocument:
        """
        解析 Excel 文件的所有 sheet

        Args:
            file_path: Excel 文件路径
            active_sheet: 活动工作表（默认第一个）

        Returns:
            SpreadsheetDocument 对象

        Raises:
            FileNotFoundError: 文件不存在
            ValueError: 文件格式不支持或读取失败
        """
        file_path = Path(file_path)

        # 检查文件是否存在
        if not file_path.exists():
            raise FileNotFoundError(f"文件不存在: {file_path}")

        # 检查文件扩展名
        if file_path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise ValueError(f"不支持的文件格式: {file_path.suffix}")

        return ExcelParser._read(file_path, active_sheet, source=file_path.name)

    @staticmethod
    def parse_bytes(data: bytes, active_sheet: Optional[str] = None) -> SpreadsheetDocument:
        """
        解析内存中的 Excel 文件内容

        Args:
            data: 文件字节内容
            active_sheet: 活动工作表（默认第一个）
        """
        return ExcelParser._read(io.BytesIO(data), active_sheet, source="<bytes>")

    @staticmethod
    def _read(source_io: Any, active_sheet: Optional[str], source: str) -> SpreadsheetDocument:
        """读取所有 sheet（不推断表头，第一行作为普通数据）"""
        try:
            frames: Dict[str, pd.DataFrame] = pd.read_excel(
                source_io, sheet_name=None, header=None, engine="openpyxl"
            )
        except Exception as e:
            raise ValueError(f"读取 Excel 文件失败: {str(e)}") from e

        if not frames:
            raise ValueError(f"Excel 文件中没有工作表: {source}")

        sheets = {str(name): ExcelParser.dataframe_to_rows(df) for name, df in frames.items()}
        if active_sheet is not None and active_sheet not in sheets:
            raise ValueError(f"Sheet 不存在: {active_sheet}")

        logger.info(f"已读取 {source}: {len(sheets)} 个工作表")
        return document_from_rows(sheets, active_sheet)

    @staticmethod
    def dataframe_to_rows(df: pd.DataFrame) -> List[List[Any]]:
        """DataFrame 转换为行列表（空值为空字符串，numpy 标量转为 Python 值）"""
        return [[ExcelParser._clean_value(v) for v in row] for row in df.itertuples(index=False, name=None)]

    @staticmethod
    def _clean_value(value: Any) -> Any:
        """单元格值清洗"""
        if value is None or pd.isna(value):
            return ""
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if hasattr(value, "item"):
            value = value.item()
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    @staticmethod
    def get_file_info(file_path: Union[str, Path]) -> Dict:
        """
        获取 Excel 文件信息

        Args:
            file_path: Excel 文件路径

        Returns:
            文件信息字典
        """
        document = ExcelParser.parse_file(file_path)
        file_path = Path(file_path)

        return {
            "file_name": file_path.name,
            "file_size": file_path.stat().st_size,
            "sheets": {
                name: {"rows": sheet.row_count(), "columns": sheet.column_count()}
                for name, sheet in document.sheets.items()
            },
        }
