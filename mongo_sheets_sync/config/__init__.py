"""配置模块"""

from .config import Config, MongoConfig, SheetsConfig, InteraktConfig, SyncConfig, MonitorConfig

__all__ = ["Config", "MongoConfig", "SheetsConfig", "InteraktConfig", "SyncConfig", "MonitorConfig"]
