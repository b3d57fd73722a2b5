"""
配置管理模块
"""
import base64
import json
import os
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field, asdict
from pathlib import Path

from loguru import logger

from ..errors import ConfigError


DEFAULT_COLUMNS: List[Dict[str, str]] = [
    {"key": "_id", "header": "ID"},
    {"key": "fullName", "header": "Name"},
    {"key": "email", "header": "Email"},
    {"key": "mobile", "header": "Phone"},
    {"key": "createdAt", "header": "Created At"},
    {"key": "grade", "header": "Grade"},
    {"key": "subject", "header": "Subject"},
]

DEFAULT_PHONE_FIELDS: List[str] = [
    "phoneNumber",
    "mobile",
    "phone",
    "contactNumber",
    "studentContactNumber",
    "Student Contact Number",
    "Phone Number",
]

# 环境变量覆盖: {"环境变量": ("配置节", "字段")}
ENV_OVERRIDES = {
    "MONGO_URI": ("mongo", "uri"),
    "MONGO_DB": ("mongo", "database"),
    "MONGO_COLLECTION": ("mongo", "collection"),
    "SPREADSHEET_ID": ("sheets", "spreadsheet_id"),
    "SHEET_NAME": ("sheets", "sheet_name"),
    "GOOGLE_CREDENTIALS_FILE": ("sheets", "credentials_file"),
    "GOOGLE_CREDENTIALS_BASE64": ("sheets", "credentials_base64"),
    "INTERAKT_API_KEY": ("interakt", "api_key"),
    "PORT": ("monitor", "liveness_port"),
    "LOG_LEVEL": ("monitor", "log_level"),
}


@dataclass
class MongoConfig:
    """MongoDB 配置"""
    uri: str = "mongodb://localhost:27017"
    database: str = ""
    collection: str = ""
    connect_timeout_ms: int = 5000  # 服务器选择超时（毫秒）


@dataclass
class SheetsConfig:
    """Google Sheets 配置"""
    spreadsheet_id: str = ""
    sheet_name: str = "Leads"
    credentials_file: str = "credentials.json"
    credentials_base64: Optional[str] = None
    timeout: int = 30  # 单次请求超时（秒）

    def credentials_info(self) -> Optional[Dict[str, Any]]:
        """解码 base64 形式的服务账号凭据"""
        if not self.credentials_base64:
            return None
        try:
            raw = base64.b64decode(self.credentials_base64).decode("utf-8")
            return json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            raise ConfigError(f"Invalid GOOGLE_CREDENTIALS_BASE64: {e}") from e


@dataclass
class InteraktConfig:
    """Interakt 配置"""
    api_key: str = ""
    base_url: str = "https://api.interakt.ai/v1/public"
    default_country_code: str = "+91"
    tag: str = "Leads"
    source: str = "GoogleSheet"
    lead_status: str = "New Lead"
    add_to_sales_cycle: bool = True
    min_phone_digits: int = 10
    timeout: int = 15

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass
class SyncConfig:
    """同步配置"""
    retry_times: int = 3  # 重试次数
    retry_delay: float = 1.0  # 首次重试间隔（秒），每次翻倍
    stream_reconnect_delay: float = 10.0  # 变更流断开后重启间隔（秒）
    restart_delay: float = 15.0  # 启动失败后重启间隔（秒）
    full_export_on_start: bool = True
    push_profiles_on_bootstrap: bool = True
    reindex_after_misses: int = 1  # 行号解析失败多少次后重建索引，0 表示不重建

    # 列定义: [{"key": "文档字段", "header": "表头"}]
    columns: List[Dict[str, str]] = field(default_factory=lambda: [dict(c) for c in DEFAULT_COLUMNS])

    # 手机号候选字段，按顺序取第一个非空值
    phone_fields: List[str] = field(default_factory=lambda: list(DEFAULT_PHONE_FIELDS))


@dataclass
class MonitorConfig:
    """监控配置"""
    liveness_port: int = 3000
    liveness_message: str = "MongoDB -> Google Sheets & Interakt sync running"
    status_interval: int = 60
    log_level: str = "INFO"
    log_file: str = "sync.log"
    log_max_size: str = "100MB"
    log_backup_count: int = 10


class Config:
    """配置管理器"""

    def __init__(self, config_path: Optional[str] = None, use_env: bool = True):
        self.config_path = config_path or self._find_config_file()
        self.use_env = use_env
        self._data: Dict[str, Any] = {}

        # 配置对象
        self.mongo: Optional[MongoConfig] = None
        self.sheets: Optional[SheetsConfig] = None
        self.interakt: Optional[InteraktConfig] = None
        self.sync: Optional[SyncConfig] = None
        self.monitor: Optional[MonitorConfig] = None

        # 加载配置
        self.load()

    def _find_config_file(self) -> str:
        """查找配置文件"""
        search_paths = [
            Path.cwd() / "config.json",
            Path.cwd() / "config" / "config.json",
            Path.home() / ".mongo_sheets_sync" / "config.json",
            Path("/etc/mongo_sheets_sync/config.json")
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        # 默认配置文件路径
        return str(Path.cwd() / "config.json")

    def load(self) -> None:
        """加载配置文件"""
        if not os.path.exists(self.config_path):
            self._create_default_config()

        with open(self.config_path, 'r', encoding='utf-8') as f:
            self._data = json.load(f)

        if self.use_env:
            self._apply_env_overrides()

        self._parse_config()

    def _apply_env_overrides(self) -> None:
        """用环境变量覆盖配置文件中的值"""
        for env_name, (section, key) in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None or value == "":
                continue
            if key == "liveness_port":
                try:
                    value = int(value)
                except ValueError as e:
                    raise ConfigError(f"{env_name} must be an integer, got {value!r}") from e
            self._data.setdefault(section, {})[key] = value
            logger.debug(f"Config {section}.{key} overridden by ${env_name}")

    def _parse_config(self) -> None:
        """解析配置"""
        try:
            self.mongo = MongoConfig(**self._data.get('mongo', {}))
            self.sheets = SheetsConfig(**self._data.get('sheets', {}))
            self.interakt = InteraktConfig(**self._data.get('interakt', {}))
            self.sync = SyncConfig(**self._data.get('sync', {}))
            self.monitor = MonitorConfig(**self._data.get('monitor', {}))
        except TypeError as e:
            # 未知字段
            raise ConfigError(f"Invalid configuration in {self.config_path}: {e}") from e

    def _create_default_config(self) -> None:
        """创建默认配置文件"""
        default_config = {
            "mongo": {
                "uri": "mongodb://localhost:27017",
                "database": "app",
                "collection": "leads"
            },
            "sheets": {
                "spreadsheet_id": "your_spreadsheet_id",
                "sheet_name": "Leads",
                "credentials_file": "credentials.json"
            },
            "interakt": {
                "api_key": "",
                "default_country_code": "+91",
                "tag": "Leads"
            },
            "sync": {
                "retry_times": 3,
                "retry_delay": 1.0,
                "columns": DEFAULT_COLUMNS
            },
            "monitor": {
                "liveness_port": 3000,
                "log_level": "INFO",
                "log_file": "sync.log"
            }
        }

        config_dir = os.path.dirname(self.config_path)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(default_config, f, indent=4, ensure_ascii=False)

        self._data = default_config

    def save(self) -> None:
        """保存配置"""
        config_dict = {
            "mongo": asdict(self.mongo) if self.mongo else {},
            "sheets": asdict(self.sheets) if self.sheets else {},
            "interakt": asdict(self.interakt) if self.interakt else {},
            "sync": asdict(self.sync) if self.sync else {},
            "monitor": asdict(self.monitor) if self.monitor else {}
        }

        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(config_dict, f, indent=4, ensure_ascii=False)

    def validate(self) -> bool:
        """验证配置是否有效"""
        if not self.mongo or not self.mongo.uri:
            raise ConfigError("MongoDB 配置缺少 uri")

        if not self.mongo.database or not self.mongo.collection:
            raise ConfigError("MongoDB 配置缺少 database 或 collection")

        if not self.sheets or not self.sheets.spreadsheet_id:
            raise ConfigError("Google Sheets 配置缺少 spreadsheet_id")

        if not self.sheets.credentials_base64 and not os.path.exists(self.sheets.credentials_file):
            raise ConfigError(
                f"Google 凭据不存在: {self.sheets.credentials_file}（或设置 GOOGLE_CREDENTIALS_BASE64）"
            )

        if not self.sync or not self.sync.columns:
            raise ConfigError("同步配置缺少列定义")

        keys = [c.get("key") for c in self.sync.columns]
        if any(not k for k in keys):
            raise ConfigError("列定义缺少 key")
        # 行索引按变更流的 documentKey._id 定位行
        if "_id" not in keys:
            raise ConfigError("列定义中缺少主键列: _id")

        if not self.interakt.enabled:
            logger.warning("INTERAKT_API_KEY not set, profile sync disabled")

        return True

    def get(self, key: str, default: Any = None) -> Any:
        """获取配置值"""
        keys = key.split('.')
        value = self._data

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """设置配置值"""
        keys = key.split('.')
        data = self._data

        for k in keys[:-1]:
            if k not in data:
                data[k] = {}
            data = data[k]

        data[keys[-1]] = value
        self._parse_config()

    def reload(self) -> None:
        """重新加载配置"""
        self.load()
