"""
同步服务异常定义
"""


class SyncError(Exception):
    """同步服务基础异常"""


class ConfigError(SyncError, ValueError):
    """配置缺失或无效"""


class SheetsError(SyncError):
    """Google Sheets 调用失败"""


class CRMError(SyncError):
    """Interakt 调用失败"""

    def __init__(self, message: str, status_code: int = None, body: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class StreamTerminated(SyncError):
    """变更流出错或被关闭，需要整体重启同步流水线"""
