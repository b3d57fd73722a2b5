"""同步核心模块"""

from .change_consumer import ChangeEvent, ChangeStreamConsumer
from .orchestrator import PipelineSession, SyncOrchestrator
from .retry import RetryExecutor, RetryResult
from .row_codec import Column, build_columns, to_row
from .row_index import RowIndex

__all__ = [
    "ChangeEvent",
    "ChangeStreamConsumer",
    "PipelineSession",
    "SyncOrchestrator",
    "RetryExecutor",
    "RetryResult",
    "Column",
    "build_columns",
    "to_row",
    "RowIndex",
]
