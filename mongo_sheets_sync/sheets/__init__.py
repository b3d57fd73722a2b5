"""Google Sheets 模块"""

from .client import SheetsClient
from .sink import SheetSink

__all__ = ["SheetsClient", "SheetSink"]
