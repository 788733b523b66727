"""Excel 导出 - 将表格文档写入 xlsx 文件"""

import io
import logging
from pathlib import Path
from typing import BinaryIO, Union

import pandas as pd

from excelbot.engine.models import SpreadsheetDocument
from excelbot.engine.sheet import export_snapshot

logger = logging.getLogger(__name__)


# Excel 限制 sheet 名称最多 31 个字符
MAX_SHEET_NAME_LENGTH = 31


def _write(document: SpreadsheetDocument, target: Union[str, Path, BinaryIO]):
    snapshot = export_snapshot(document)
    used = set()

    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        for name, rows in snapshot.items():
            sheet_name = name[:MAX_SHEET_NAME_LENGTH]
            if sheet_name in used:
                raise ValueError(f"截断后的 sheet 名称重复: {sheet_name}")
            used.add(sheet_name)

            df = pd.DataFrame(rows) if rows else pd.DataFrame([[""]])
            df.to_excel(writer, sheet_name=sheet_name, header=False, index=False)


def export_to_bytes(document: SpreadsheetDocument) -> bytes:
    """导出为 xlsx 字节内容"""
    buffer = io.BytesIO()
    _write(document, buffer)
    return buffer.getvalue()


def export_to_file(document: SpreadsheetDocument, output_path: Union[str, Path]) -> Path:
    """
    导出到 xlsx 文件

    Args:
        document: 表格文档
        output_path: 输出文件路径

    Returns:
        输出文件路径
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _write(document, output_path)
    logger.info(f"已导出到 {output_path}")
    return output_path

