"""
变更流消费者
"""
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence

from loguru import logger
from pymongo.errors import PyMongoError

from ..errors import StreamTerminated
from .row_codec import Column
from .row_index import RowIndex

INSERT = "insert"
UPDATE = "update"
REPLACE = "replace"
DELETE = "delete"
INVALIDATE = "invalidate"


@dataclass
class ChangeEvent:
    """变更事件"""
    operation_type: str
    entity_id: Optional[str]
    full_document: Optional[Dict[str, Any]] = None

    @classmethod
    def from_change(cls, change: Mapping[str, Any]) -> "ChangeEvent":
        document_key = change.get("documentKey") or {}
        raw_id = document_key.get("_id")
        return cls(
            operation_type=change.get("operationType", ""),
            entity_id=str(raw_id) if raw_id is not None else None,
            full_document=change.get("fullDocument"),
        )


class ChangeStreamConsumer:
    """按顺序逐个处理变更事件，分发到表格和 CRM

    每个事件处理完毕（包括所有网络调用）才开始下一个，保证同一文档的修改顺序。
    单个事件的异常只记录日志，不影响后续事件。
    """

    def __init__(self, sheet_sink, index: RowIndex, columns: Sequence[Column],
                 profile_sink=None, reindex_after_misses: int = 1):
        self.sheet_sink = sheet_sink
        self.profile_sink = profile_sink
        self.index = index
        self.columns = list(columns)
        self.reindex_after_misses = reindex_after_misses
        self.stats: Counter = Counter()
        self._pending_misses = 0

        self._handlers: Dict[str, Callable[[ChangeEvent], None]] = {
            INSERT: self._on_insert,
            UPDATE: self._on_upsert,
            REPLACE: self._on_upsert,
            DELETE: self._on_delete,
        }

    def consume(self, stream: Iterable[Mapping[str, Any]]) -> None:
        """消费变更流，流出错或结束时抛出 StreamTerminated"""
        logger.info("Watching MongoDB changes...")
        try:
            for change in stream:
                event = ChangeEvent.from_change(change)
                if event.operation_type == INVALIDATE:
                    raise StreamTerminated("Change stream invalidated")
                self.handle(event)
        except PyMongoError as e:
            raise StreamTerminated(f"Change stream error: {e}") from e

        raise StreamTerminated("Change stream closed")

    def handle(self, event: ChangeEvent) -> bool:
        """处理单个事件，返回是否处理成功"""
        handler = self._handlers.get(event.operation_type)
        if handler is None:
            logger.info(f"Skipping {event.operation_type!r} event for {event.entity_id}")
            self.stats["skipped"] += 1
            return True

        try:
            self._maybe_reindex()
        except Exception as e:
            logger.error(f"Index rebuild failed, keeping current index: {e}")

        try:
            handler(event)
            self.stats[event.operation_type] += 1
            return True
        except Exception as e:
            logger.error(f"Handler error ({event.operation_type} {event.entity_id}): {e}")
            self.stats["errors"] += 1
            return False

    def _on_insert(self, event: ChangeEvent) -> None:
        document = self._require_document(event)
        if document is None:
            return
        logger.info(f"Insert: {event.entity_id}")
        self._append(event.entity_id, document)
        self._push_profile(document)

    def _on_upsert(self, event: ChangeEvent) -> None:
        document = self._require_document(event)
        if document is None:
            return

        row_number = self.index.get(event.entity_id)
        if row_number:
            logger.info(f"Update: {event.entity_id} -> row {row_number}")
            self.sheet_sink.update_row(row_number, document)
        else:
            logger.info(f"Update without index entry, appending: {event.entity_id}")
            self._append(event.entity_id, document)
        self._push_profile(document)

    def _on_delete(self, event: ChangeEvent) -> None:
        row_number = self.index.get(event.entity_id)
        if not row_number:
            logger.debug(f"Delete for unindexed {event.entity_id}, nothing to clear")
            return

        logger.info(f"Delete: {event.entity_id} row {row_number}")
        self.sheet_sink.clear_row(row_number)
        self.index.delete(event.entity_id)

    def _require_document(self, event: ChangeEvent) -> Optional[Dict[str, Any]]:
        # updateLookup 时文档可能已被删除
        if event.full_document is None:
            logger.warning(f"No full document for {event.operation_type} {event.entity_id}, skipping")
            self.stats["missing_document"] += 1
            return None
        return event.full_document

    def _append(self, entity_id: str, document: Mapping[str, Any]) -> None:
        row_number = self.sheet_sink.append_row(document, self.index, entity_id)
        if row_number is None:
            self.stats["index_misses"] += 1
            self._pending_misses += 1

    def _push_profile(self, document: Mapping[str, Any]) -> None:
        if self.profile_sink is not None:
            self.profile_sink.upsert(document)

    def _maybe_reindex(self) -> None:
        """append 后未能记录行号的次数达到阈值时，从表格重建索引"""
        if self.reindex_after_misses <= 0 or self._pending_misses < self.reindex_after_misses:
            return

        logger.warning(f"{self._pending_misses} appended row(s) missing from index, rebuilding")
        self._pending_misses = 0
        self.index.rebuild(self.sheet_sink, self.columns)
        self.stats["reindexes"] += 1
