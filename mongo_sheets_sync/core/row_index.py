"""
行索引：文档 ID -> 表格行号
"""
from typing import Any, Dict, List, Optional, Protocol, Sequence

from loguru import logger

from ..errors import SheetsError
from .row_codec import ID_KEY, Column

# 第一行为表头，数据从第二行开始
FIRST_DATA_ROW = 2


class DataRowReader(Protocol):
    def read_data_rows(self) -> Optional[List[List[Any]]]:
        ...


class RowIndex:
    """文档 ID 到行号的映射

    启动时一次性扫描表格重建，之后随 append/delete 增量维护。
    映射只是参考：表格被外部编辑后会过期，直到下一次重启重建。
    """

    def __init__(self):
        self._rows: Dict[str, int] = {}

    def rebuild(self, reader: DataRowReader, columns: Sequence[Column]) -> int:
        """从表格重建索引，返回已索引的行数

        主键列按 _id 列定位，与变更事件的 documentKey 一致。
        """
        id_col = next((i for i, c in enumerate(columns) if c.key == ID_KEY), None)
        if id_col is None:
            raise ValueError(f"ID column {ID_KEY!r} not found in columns")

        rows = reader.read_data_rows()
        if rows is None:
            raise SheetsError("Failed to read sheet rows for index rebuild")

        self._rows.clear()
        for offset, row in enumerate(rows):
            cell = row[id_col] if id_col < len(row) else ""
            entity_id = str(cell).strip() if cell is not None else ""
            if entity_id:
                self._rows[entity_id] = FIRST_DATA_ROW + offset

        logger.info(f"Indexed {len(self._rows)} rows from sheet")
        return len(self._rows)

    def get(self, entity_id: str) -> Optional[int]:
        return self._rows.get(entity_id)

    def set(self, entity_id: str, row_number: int) -> None:
        if row_number < FIRST_DATA_ROW:
            raise ValueError(f"Row {row_number} is reserved for the header")
        self._rows[entity_id] = row_number

    def delete(self, entity_id: str) -> None:
        self._rows.pop(entity_id, None)

    def clear(self) -> None:
        self._rows.clear()

    def snapshot(self) -> Dict[str, int]:
        return dict(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, entity_id: str) -> bool:
        return entity_id in self._rows
