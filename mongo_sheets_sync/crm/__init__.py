"""Interakt 模块"""

from .client import InteraktClient
from .sink import ProfileSink

__all__ = ["InteraktClient", "ProfileSink"]
