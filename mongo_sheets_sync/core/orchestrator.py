"""
同步编排器：启动、快照导出、索引重建、变更监听和整体重启
"""
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from loguru import logger

from ..config.config import Config
from ..crm.client import InteraktClient
from ..crm.sink import ProfileSink
from ..errors import SheetsError, StreamTerminated
from ..sheets.client import SheetsClient
from ..sheets.sink import SheetSink
from ..store.mongo import MongoStore
from .change_consumer import ChangeStreamConsumer
from .retry import RetryExecutor
from .row_codec import build_columns
from .row_index import RowIndex


class PipelineSession:
    """一次流水线运行期间独占的连接和索引

    重启时整体丢弃并新建，不与旧实例共享可变状态。
    """

    def __init__(self, store: MongoStore, sheet_sink: SheetSink,
                 profile_sink: Optional[ProfileSink] = None,
                 reindex_after_misses: int = 1):
        self.store = store
        self.sheet_sink = sheet_sink
        self.profile_sink = profile_sink
        self.index = RowIndex()
        self.consumer = ChangeStreamConsumer(
            sheet_sink,
            self.index,
            sheet_sink.columns,
            profile_sink=profile_sink,
            reindex_after_misses=reindex_after_misses,
        )
        self._stream = None

    def open(self) -> None:
        self.store.connect()

    def export_snapshot(self, push_profiles: bool = True) -> int:
        """快照替换：表格与当前集合完全一致，丢弃外部修改"""
        documents = self.store.find_all()
        if not self.sheet_sink.export_snapshot(documents):
            raise SheetsError("Initial export to sheet failed")

        if push_profiles and self.profile_sink is not None:
            sent = sum(1 for d in documents if self.profile_sink.upsert(d))
            logger.info(f"Initial Interakt sync done: {sent}/{len(documents)} pushed")

        return len(documents)

    def prepare(self) -> None:
        """写表头并重建索引"""
        if not self.sheet_sink.write_header():
            raise SheetsError("Failed to write header row")
        self.index.rebuild(self.sheet_sink, self.sheet_sink.columns)

    def run(self) -> None:
        """阻塞消费变更流，直到流出错或关闭"""
        self._stream = self.store.watch()
        try:
            self.consumer.consume(self._stream)
        finally:
            self._close_stream()

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing change stream: {e}")

    def close(self) -> None:
        self._close_stream()
        self.store.close()
        if self.profile_sink is not None:
            self.profile_sink.client.close()


def build_session(config: Config) -> PipelineSession:
    """按配置创建新的流水线会话"""
    retry = RetryExecutor(config.sync.retry_times, config.sync.retry_delay)
    columns = build_columns(config.sync.columns)

    sheet_sink = SheetSink(
        SheetsClient.from_config(config.sheets),
        config.sheets.sheet_name,
        columns,
        retry,
    )

    profile_sink = None
    if config.interakt.enabled:
        profile_sink = ProfileSink(
            InteraktClient(config.interakt),
            config.interakt,
            config.sync.phone_fields,
            retry,
        )

    return PipelineSession(
        MongoStore(config.mongo),
        sheet_sink,
        profile_sink,
        reindex_after_misses=config.sync.reindex_after_misses,
    )


class SyncOrchestrator:
    """流水线监督者

    任何一步失败都记录日志并在固定延迟后整体重启，不会让异常导致进程退出。
    """

    def __init__(self, config: Config,
                 session_factory: Optional[Callable[[Config], PipelineSession]] = None,
                 full_export: Optional[bool] = None):
        self.config = config
        self.session_factory = session_factory or build_session
        self.full_export = config.sync.full_export_on_start if full_export is None else full_export
        self.session: Optional[PipelineSession] = None
        self._stop_event = threading.Event()

        self.stats: Dict[str, Any] = {
            'sessions_started': 0,
            'startup_failures': 0,
            'stream_restarts': 0,
            'last_export_count': None,
            'start_time': None
        }

    @property
    def running(self) -> bool:
        return self.stats['start_time'] is not None and not self._stop_event.is_set()

    def start_session(self) -> PipelineSession:
        """启动步骤 1-5：关闭旧连接、连接、快照导出、表头、索引"""
        self._close_session()

        session = self.session_factory(self.config)
        self.session = session
        self.stats['sessions_started'] += 1

        session.open()

        if self.full_export:
            self.stats['last_export_count'] = session.export_snapshot(
                push_profiles=self.config.sync.push_profiles_on_bootstrap
            )

        session.prepare()
        return session

    def run_once(self) -> float:
        """运行一次完整流水线，返回下次重启前应等待的秒数"""
        try:
            session = self.start_session()
        except Exception as e:
            self.stats['startup_failures'] += 1
            logger.error(f"Sync start error: {e}")
            self._close_session()
            return self.config.sync.restart_delay

        try:
            session.run()
        except StreamTerminated as e:
            self.stats['stream_restarts'] += 1
            logger.warning(f"{e}. Reconnecting in {self.config.sync.stream_reconnect_delay:.0f}s...")
            return self.config.sync.stream_reconnect_delay
        except Exception as e:
            self.stats['startup_failures'] += 1
            logger.error(f"Failed to start change stream: {e}")
            return self.config.sync.restart_delay
        finally:
            self._close_session()

        return self.config.sync.stream_reconnect_delay

    def run_forever(self) -> None:
        """阻塞运行，直到 stop() 被调用"""
        self.stats['start_time'] = datetime.now()
        logger.info("Sync orchestrator started")

        while not self._stop_event.is_set():
            delay = self.run_once()
            if self._stop_event.is_set():
                break
            logger.info(f"Restarting sync pipeline in {delay:.0f}s...")
            self._stop_event.wait(delay)

        logger.info("Sync orchestrator stopped")

    def stop(self) -> None:
        """停止编排器；关闭当前会话以中断阻塞中的变更流"""
        self._stop_event.set()
        self._close_session()

    def export_once(self) -> int:
        """一次性导出：连接、快照写入表格后退出"""
        session = self.session_factory(self.config)
        try:
            session.open()
            count = session.export_snapshot(push_profiles=False)
            logger.info(f"Exported {count} rows to {self.config.sheets.sheet_name}")
            return count
        finally:
            session.close()

    def _close_session(self) -> None:
        session, self.session = self.session, None
        if session is None:
            return
        try:
            session.close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing session: {e}")

    def get_status(self) -> Dict[str, Any]:
        """获取编排器状态"""
        uptime = None
        if self.stats['start_time']:
            uptime = (datetime.now() - self.stats['start_time']).total_seconds()

        session = self.session
        return {
            'running': self.running,
            'uptime_seconds': uptime,
            'orchestrator': dict(self.stats),
            'indexed_rows': len(session.index) if session else 0,
            'events': dict(session.consumer.stats) if session else {},
        }
