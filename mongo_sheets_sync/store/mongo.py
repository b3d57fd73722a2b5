"""
MongoDB 连接与变更流
"""
from typing import Any, Dict, Iterator, List, Optional

from loguru import logger
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from ..config.config import MongoConfig


class MongoStore:
    """单个集合的连接封装，每次流水线重启都新建实例"""

    def __init__(self, config: MongoConfig, client_factory=MongoClient):
        self.config = config
        self._client_factory = client_factory
        self._client: Optional[MongoClient] = None
        self._collection: Optional[Collection] = None

    @property
    def collection(self) -> Collection:
        if self._collection is None:
            raise RuntimeError("MongoStore is not connected")
        return self._collection

    def connect(self) -> None:
        """建立连接，超时由 serverSelectionTimeoutMS 控制"""
        self._client = self._client_factory(
            self.config.uri,
            serverSelectionTimeoutMS=self.config.connect_timeout_ms,
        )
        # MongoClient 是惰性连接，ping 一次才能真正检测连通性
        self._client.admin.command("ping")
        self._collection = self._client[self.config.database][self.config.collection]
        logger.info(f"Connected to MongoDB {self.config.database}.{self.config.collection}")

    def close(self) -> None:
        if self._client is None:
            return
        try:
            self._client.close()
        except PyMongoError as e:
            logger.debug(f"Ignoring error while closing MongoDB client: {e}")
        finally:
            self._client = None
            self._collection = None

    def find_all(self) -> List[Dict[str, Any]]:
        """读取集合中的全部文档（按自然顺序）"""
        documents = list(self.collection.find({}))
        logger.debug(f"Read {len(documents)} documents from {self.config.collection}")
        return documents

    def watch(self) -> Iterator[Dict[str, Any]]:
        """打开变更流，更新事件附带完整文档"""
        return self.collection.watch([], full_document="updateLookup")

    def test_connection(self) -> bool:
        try:
            self.connect()
            return True
        except PyMongoError as e:
            logger.error(f"MongoDB connection test failed: {e}")
            return False
        finally:
            self.close()
