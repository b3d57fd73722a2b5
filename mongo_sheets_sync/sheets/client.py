"""
Google Sheets 客户端封装
"""
from typing import Any, Dict, List, Optional

import httplib2
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from loguru import logger

from ..config.config import SheetsConfig
from ..errors import SheetsError

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# 原样写入，不做公式或类型转换
VALUE_INPUT_OPTION = "RAW"


def build_credentials(config: SheetsConfig) -> service_account.Credentials:
    """从 base64 环境变量或凭据文件创建服务账号凭据"""
    info = config.credentials_info()
    if info is not None:
        return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
    return service_account.Credentials.from_service_account_file(
        config.credentials_file, scopes=SCOPES
    )


class SheetsClient:
    """spreadsheets.values 接口封装"""

    def __init__(self, spreadsheet_id: str, service: Any):
        self.spreadsheet_id = spreadsheet_id
        self._values = service.spreadsheets().values()

    @classmethod
    def from_config(cls, config: SheetsConfig) -> "SheetsClient":
        credentials = build_credentials(config)
        http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=config.timeout))
        service = build("sheets", "v4", http=http, cache_discovery=False)
        logger.info(f"Google Sheets client initialized for spreadsheet {config.spreadsheet_id}")
        return cls(config.spreadsheet_id, service)

    def _execute(self, request: Any, action: str, range_: str) -> Dict[str, Any]:
        try:
            return request.execute() or {}
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            raise SheetsError(f"{action} {range_} failed (HTTP {status}): {e}") from e

    def get_values(self, range_: str) -> List[List[Any]]:
        """读取范围内的值"""
        request = self._values.get(spreadsheetId=self.spreadsheet_id, range=range_)
        response = self._execute(request, "get", range_)
        values = response.get("values", [])
        logger.debug(f"Read {len(values)} rows from {range_}")
        return values

    def update_values(self, range_: str, values: List[List[Any]]) -> Dict[str, Any]:
        """覆盖范围内的值"""
        request = self._values.update(
            spreadsheetId=self.spreadsheet_id,
            range=range_,
            valueInputOption=VALUE_INPUT_OPTION,
            body={"values": values},
        )
        response = self._execute(request, "update", range_)
        logger.debug(f"Updated {response.get('updatedRows', 0)} rows at {range_}")
        return response

    def append_values(self, range_: str, values: List[List[Any]]) -> Dict[str, Any]:
        """在表格末尾追加行"""
        request = self._values.append(
            spreadsheetId=self.spreadsheet_id,
            range=range_,
            valueInputOption=VALUE_INPUT_OPTION,
            insertDataOption="INSERT_ROWS",
            body={"values": values},
        )
        return self._execute(request, "append", range_)

    def clear_values(self, range_: str) -> Dict[str, Any]:
        """清空范围内的值"""
        request = self._values.clear(
            spreadsheetId=self.spreadsheet_id, range=range_, body={}
        )
        return self._execute(request, "clear", range_)

    @staticmethod
    def updated_range(append_response: Dict[str, Any]) -> Optional[str]:
        """append 响应中实际写入的范围"""
        updates = append_response.get("updates") or {}
        return updates.get("updatedRange")
