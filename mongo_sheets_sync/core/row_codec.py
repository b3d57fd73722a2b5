"""
行编解码：MongoDB 文档 <-> 表格行
"""
import json
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

# 直接写入表格的标量类型
SCALAR_TYPES = (str, int, float, bool)

# 文档主键；变更流的 documentKey 只携带这个字段
ID_KEY = "_id"


@dataclass(frozen=True)
class Column:
    """列定义：文档字段 -> 表头"""
    key: str
    header: str

    @classmethod
    def from_dict(cls, data: Mapping[str, str]) -> "Column":
        return cls(key=data["key"], header=data.get("header") or data["key"])


def build_columns(raw_columns: Iterable[Mapping[str, str]]) -> List[Column]:
    """从配置构建列定义"""
    return [Column.from_dict(c) for c in raw_columns]


def format_datetime(value: datetime) -> str:
    """格式化为 UTC ISO-8601，毫秒精度，Z 结尾

    pymongo 返回的 naive datetime 均为 UTC。
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def to_cell(value: Any) -> Any:
    """把单个字段值转换为单元格值，永不抛异常"""
    if value is None:
        return ""
    if isinstance(value, SCALAR_TYPES):
        return value
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (dict, list, tuple)):
        try:
            return json.dumps(value, ensure_ascii=False, default=str, separators=(",", ":"))
        except (TypeError, ValueError):
            return str(value)
    # ObjectId, Decimal128, UUID 等都有自然的字符串形式
    try:
        return str(value)
    except Exception:
        return repr(value)


def document_id(document: Mapping[str, Any]) -> str:
    """文档主键的字符串形式，与变更事件的 entity_id 一致"""
    return str(document.get(ID_KEY))


def to_row(document: Optional[Mapping[str, Any]], columns: Sequence[Column]) -> List[Any]:
    """按列顺序把文档编码为一行"""
    document = document or {}
    return [to_cell(document.get(column.key)) for column in columns]


def header_row(columns: Sequence[Column]) -> List[str]:
    """表头行"""
    return [column.header for column in columns]


def row_to_record(row: Sequence[Any], columns: Sequence[Column]) -> Dict[str, Any]:
    """把表格行解码为 {字段: 单元格}，短行补空字符串"""
    return {
        column.key: row[i] if i < len(row) else ""
        for i, column in enumerate(columns)
    }


def json_safe(document: Mapping[str, Any]) -> Dict[str, Any]:
    """把文档转换为可 JSON 序列化的字典（用于 CRM traits）"""
    result = {}
    for key, value in document.items():
        if isinstance(value, Mapping):
            result[key] = json_safe(value)
        elif isinstance(value, (list, tuple)):
            result[key] = [
                json_safe(v) if isinstance(v, Mapping) else to_cell(v)
                for v in value
            ]
        else:
            result[key] = to_cell(value) if value is not None else None
    return result
