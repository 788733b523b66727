"""单元格寻址 - 列字母与索引、A1 标识与行列坐标之间的转换"""

import re

from excelbot.engine.models import CellAddress


# 单元格引用：一个或多个字母后跟数字（如 A1、AB12）
CELL_REF_PATTERN = re.compile(r"([A-Za-z]+)(\d+)")

_FULL_CELL_REF = re.compile(r"^\$?[A-Za-z]+\$?\d+$")


def column_to_index(letters: str) -> int:
    """
    将列字母转换为从 0 开始的列索引

    Args:
        letters: 列标识（A, B, ..., Z, AA, ...），不区分大小写

    Returns:
        列索引（A -> 0, Z -> 25, AA -> 26）；空串或含非字母字符时返回 0
    """
    letters = (letters or "").strip().upper()
    if not letters or not letters.isascii() or not letters.isalpha():
        return 0

    index = 0
    for ch in letters:
        index = index * 26 + (ord(ch) - 64)
    return index - 1


def index_to_column(index: int) -> str:
    """
    将列索引转换为 Excel 列标识

    Args:
        index: 列索引（从 0 开始）

    Returns:
        Excel 列标识（A, B, ..., Z, AA, AB, ...）
    """
    if index < 0:
        raise ValueError(f"列索引不能为负数: {index}")

    result = ""
    index += 1
    while index > 0:
        index -= 1
        result = chr(65 + (index % 26)) + result
        index //= 26
    return result


def cell_to_indices(cell: str) -> CellAddress:
    """
    将 A1 形式的单元格标识转换为行列坐标

    缺失的列部分按 "A" 处理，缺失的行部分按 "1" 处理；
    绝对引用的 $ 符号会被忽略。

    Args:
        cell: 单元格标识，如 "B3"、"$C$10"

    Returns:
        CellAddress（B3 -> row=2, col=1）
    """
    cell = (cell or "").replace("$", "").strip()

    col_match = re.search(r"[A-Za-z]+", cell)
    row_match = re.search(r"\d+", cell)

    col_str = col_match.group(0) if col_match else "A"
    row_str = row_match.group(0) if row_match else "1"

    return CellAddress(row=max(int(row_str) - 1, 0), col=column_to_index(col_str))


def indices_to_cell(row: int, col: int) -> str:
    """将行列坐标转换为 A1 形式的单元格标识"""
    return f"{index_to_column(col)}{row + 1}"


def is_cell_reference(text: str) -> bool:
    """判断字符串是否是单个单元格引用"""
    return bool(_FULL_CELL_REF.match((text or "").strip()))
