#!/usr/bin/env python3
"""
MongoDB -> Google Sheets & Interakt 实时同步服务
主程序入口
"""
import sys
import signal
import threading
import argparse
from loguru import logger

from mongo_sheets_sync.config.config import Config
from mongo_sheets_sync.core.orchestrator import SyncOrchestrator, build_session
from mongo_sheets_sync.monitor.liveness import LivenessServer
from mongo_sheets_sync.monitor.logger import setup_logger


class SyncApplication:
    """同步应用主类"""

    def __init__(self, config_path: str = None, full_export: bool = None):
        self.config_path = config_path
        self.full_export = full_export
        self.config = None
        self.orchestrator = None
        self.liveness = None
        self._status_stop = threading.Event()

        # 注册信号处理
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame):
        """信号处理器"""
        logger.info(f"Received signal {signum}, shutting down...")
        self.stop()

    def initialize(self):
        """初始化应用"""
        try:
            # 加载配置
            self.config = Config(self.config_path)

            # 设置日志
            setup_logger(self.config.monitor)

            logger.info("=" * 60)
            logger.info("MongoDB -> Google Sheets & Interakt Sync Service")
            logger.info("=" * 60)
            logger.info(f"Config file: {self.config.config_path}")
            logger.info(f"Log level: {self.config.monitor.log_level}")
            logger.info(f"Source: {self.config.mongo.database}.{self.config.mongo.collection}")
            logger.info(f"Sheet: {self.config.sheets.sheet_name}")

            self.config.validate()

            self.orchestrator = SyncOrchestrator(self.config, full_export=self.full_export)
            self.liveness = LivenessServer(
                self.config.monitor.liveness_port,
                self.config.monitor.liveness_message
            )

            logger.info("Application initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize application: {e}")
            raise

    def start(self):
        """启动应用，阻塞直到收到停止信号"""
        if not self.orchestrator:
            raise RuntimeError("Application not initialized")

        self.liveness.start()

        status_thread = threading.Thread(
            target=self._status_loop,
            name="StatusThread"
        )
        status_thread.daemon = True
        status_thread.start()

        logger.info("Application started, press Ctrl+C to stop")
        try:
            self.orchestrator.run_forever()
        finally:
            self.stop()

    def stop(self):
        """停止应用"""
        if self._status_stop.is_set():
            return
        self._status_stop.set()

        if self.orchestrator:
            self.orchestrator.stop()

        if self.liveness:
            self.liveness.stop()

        logger.info("Application stopped")

    def test_connections(self) -> bool:
        """测试 MongoDB 和表格的连通性"""
        session = build_session(self.config)
        try:
            session.open()
            rows = session.sheet_sink.read_data_rows()
            if rows is None:
                logger.error("Sheet connection test failed")
                return False
            logger.info(f"MongoDB and sheet reachable ({len(rows)} data rows)")
            return True
        except Exception as e:
            logger.error(f"Connection test failed: {e}")
            return False
        finally:
            session.close()

    def _status_loop(self):
        """定期输出状态"""
        interval = self.config.monitor.status_interval
        while not self._status_stop.wait(interval):
            self._print_status()

    def _print_status(self):
        """打印状态信息"""
        status = self.orchestrator.get_status()
        stats = status['orchestrator']
        events = status['events']

        logger.info("-" * 50)
        logger.info("Sync Service Status")
        logger.info("-" * 50)
        logger.info(f"Running: {status['running']}")
        if status['uptime_seconds'] is not None:
            logger.info(f"Uptime: {status['uptime_seconds']:.0f} seconds")
        logger.info(f"Sessions: {stats['sessions_started']} started, "
                    f"{stats['startup_failures']} startup failures, "
                    f"{stats['stream_restarts']} stream restarts")
        logger.info(f"Indexed rows: {status['indexed_rows']}")
        logger.info(f"Events: {events.get('insert', 0)} insert, "
                    f"{events.get('update', 0) + events.get('replace', 0)} update, "
                    f"{events.get('delete', 0)} delete, "
                    f"{events.get('errors', 0)} errors")
        logger.info("-" * 50)


def main():
    """主函数"""
    parser = argparse.ArgumentParser(
        description='MongoDB to Google Sheets & Interakt Sync Service'
    )
    parser.add_argument(
        '-c', '--config',
        help='Path to configuration file',
        default=None
    )
    parser.add_argument(
        '--init',
        action='store_true',
        help='Initialize configuration file'
    )
    parser.add_argument(
        '--test',
        action='store_true',
        help='Test connections and exit'
    )
    parser.add_argument(
        '--export-once',
        action='store_true',
        help='Export the whole collection to the sheet once and exit'
    )
    parser.add_argument(
        '--no-bootstrap',
        action='store_true',
        help='Skip the full snapshot export on (re)start'
    )

    args = parser.parse_args()

    # 初始化配置文件
    if args.init:
        config = Config(args.config, use_env=False)
        config.save()
        print(f"Configuration file created: {config.config_path}")
        print("Please edit the configuration file and run the service again")
        return

    app = SyncApplication(args.config, full_export=False if args.no_bootstrap else None)
    app.initialize()

    if args.test:
        logger.info("Testing connections...")
        sys.exit(0 if app.test_connections() else 1)

    if args.export_once:
        try:
            app.orchestrator.export_once()
        except Exception as e:
            logger.error(f"Export failed: {e}")
            sys.exit(1)
        return

    # 启动服务
    try:
        app.start()
    except Exception as e:
        logger.error(f"Service failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
