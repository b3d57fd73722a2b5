"""
A1 坐标换算
"""
import re
from typing import Optional

# 列号为双射 26 进制：没有 0，26 -> Z，27 -> AA
_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

# 匹配 append 响应中的 updatedRange，例如 "'Leads'!A5:G5" 或 "Leads!A5"
_UPDATED_RANGE_RE = re.compile(r"!\$?[A-Za-z]+\$?(\d+)(?::|$)")


def column_label(n: int) -> str:
    """列号 -> 列字母 (1 -> A, 27 -> AA)"""
    if n < 1:
        raise ValueError(f"Column number must be >= 1, got {n}")

    label = ""
    while n > 0:
        n, remainder = divmod(n - 1, 26)
        label = _ALPHABET[remainder] + label
    return label


def column_index(label: str) -> int:
    """列字母 -> 列号 (A -> 1, AA -> 27)"""
    if not label or not label.isalpha() or not label.isascii():
        raise ValueError(f"Invalid column label: {label!r}")

    n = 0
    for char in label.upper():
        n = n * 26 + (ord(char) - ord("A") + 1)
    return n


def quote_sheet(sheet_name: str) -> str:
    """工作表名包含空格或特殊字符时需要加引号"""
    if re.fullmatch(r"[A-Za-z0-9_]+", sheet_name):
        return sheet_name
    return "'" + sheet_name.replace("'", "''") + "'"


def range_for_row(sheet_name: str, row_number: int, column_count: int) -> str:
    """单行范围：A{row} 到最后一列"""
    if row_number < 1:
        raise ValueError(f"Row number must be >= 1, got {row_number}")
    last = column_label(column_count)
    return f"{quote_sheet(sheet_name)}!A{row_number}:{last}{row_number}"


def data_range(sheet_name: str, column_count: int, first_row: int = 2) -> str:
    """从 first_row 开始的开放数据区域"""
    return f"{quote_sheet(sheet_name)}!A{first_row}:{column_label(column_count)}"


def sheet_range(sheet_name: str) -> str:
    """整张表（用于清空，包含配置列之外的外部编辑）"""
    return quote_sheet(sheet_name)


def anchor(sheet_name: str) -> str:
    return f"{quote_sheet(sheet_name)}!A1"


def row_number_from_range(updated_range: Optional[str]) -> Optional[int]:
    """从 append 返回的 updatedRange 中解析行号，解析失败返回 None"""
    if not updated_range or not isinstance(updated_range, str):
        return None
    match = _UPDATED_RANGE_RE.search(updated_range)
    if not match:
        return None
    row_number = int(match.group(1))
    return row_number if row_number >= 1 else None
