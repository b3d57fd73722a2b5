"""MongoDB 模块"""

from .mongo import MongoStore

__all__ = ["MongoStore"]
