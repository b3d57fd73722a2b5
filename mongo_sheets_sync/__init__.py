"""
MongoDB 到 Google Sheets / Interakt 实时同步服务
"""

__version__ = "1.0.0"

from .core.orchestrator import SyncOrchestrator, PipelineSession
from .config.config import Config

__all__ = ["SyncOrchestrator", "PipelineSession", "Config"]
