"""
表格写入适配器
"""
from typing import Any, List, Mapping, Optional, Sequence

from loguru import logger

from ..core.coordinates import (
    anchor,
    column_label,
    data_range,
    quote_sheet,
    range_for_row,
    row_number_from_range,
    sheet_range,
)
from ..core.retry import RetryExecutor, RetryResult
from ..core.row_codec import Column, document_id, header_row, to_row
from ..core.row_index import FIRST_DATA_ROW, RowIndex
from .client import SheetsClient


class SheetSink:
    """表格写入适配器，所有调用都经过重试执行器"""

    def __init__(self, client: SheetsClient, sheet_name: str,
                 columns: Sequence[Column], retry: RetryExecutor):
        self.client = client
        self.sheet_name = sheet_name
        self.columns = list(columns)
        self.retry = retry

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def write_header(self) -> RetryResult:
        """覆盖第一行表头"""
        header = header_row(self.columns)
        range_ = f"{anchor(self.sheet_name)}:{column_label(self.column_count)}1"
        return self.retry.run(
            lambda: self.client.update_values(range_, [header]), "writeHeader"
        )

    def append_row(self, document: Mapping[str, Any], index: RowIndex,
                   entity_id: Optional[str] = None) -> Optional[int]:
        """追加一行并记录到索引，返回分配的行号

        索引键为变更流的文档 _id；行号解析失败不抛异常，索引保持不变，
        后续更新会退化为追加。
        """
        if entity_id is None:
            entity_id = document_id(document)
        row = to_row(document, self.columns)
        result = self.retry.run(
            lambda: self.client.append_values(f"{quote_sheet(self.sheet_name)}!A:A", [row]),
            f"appendRow({entity_id})",
        )
        if not result:
            return None

        updated = SheetsClient.updated_range(result.value)
        row_number = row_number_from_range(updated)
        if row_number is None or row_number < FIRST_DATA_ROW:
            logger.warning(
                f"Could not parse row number from append response {updated!r} for {entity_id}"
            )
            return None

        index.set(entity_id, row_number)
        logger.debug(f"Appended {entity_id} at row {row_number}")
        return row_number

    def update_row(self, row_number: int, document: Mapping[str, Any]) -> RetryResult:
        """原位覆盖指定行，不修改索引"""
        entity_id = document_id(document)
        row = to_row(document, self.columns)
        range_ = range_for_row(self.sheet_name, row_number, self.column_count)
        return self.retry.run(
            lambda: self.client.update_values(range_, [row]),
            f"updateRow({entity_id}, row {row_number})",
        )

    def clear_row(self, row_number: int) -> RetryResult:
        """清空指定行（逻辑删除，行号保留不复用）"""
        range_ = range_for_row(self.sheet_name, row_number, self.column_count)
        return self.retry.run(
            lambda: self.client.clear_values(range_), f"clearRow(row {row_number})"
        )

    def clear_all(self) -> RetryResult:
        return self.retry.run(
            lambda: self.client.clear_values(sheet_range(self.sheet_name)), "clearSheet"
        )

    def bulk_write(self, values: List[List[Any]]) -> RetryResult:
        """从 A1 开始整体写入（表头 + 数据）"""
        return self.retry.run(
            lambda: self.client.update_values(anchor(self.sheet_name), values),
            "initialExport",
        )

    def read_data_rows(self) -> Optional[List[List[Any]]]:
        """读取第二行起的所有数据行，失败返回 None"""
        range_ = data_range(self.sheet_name, self.column_count)
        result = self.retry.run(lambda: self.client.get_values(range_), "readSheet")
        return result.value if result else None

    def export_snapshot(self, documents: Sequence[Mapping[str, Any]]) -> bool:
        """快照替换：清空表格后写入表头和全部文档"""
        values = [header_row(self.columns)] + [to_row(d, self.columns) for d in documents]
        if not self.clear_all():
            return False
        if not self.bulk_write(values):
            return False
        logger.info(f"Exported {len(documents)} documents to {self.sheet_name} sheet")
        return True
