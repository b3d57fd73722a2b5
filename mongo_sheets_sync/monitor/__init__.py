"""监控模块"""

from .liveness import LivenessServer
from .logger import setup_logger

__all__ = ["LivenessServer", "setup_logger"]
