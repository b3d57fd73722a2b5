"""
Interakt 客户端封装
"""
from typing import Any, Dict, Optional

import requests
from loguru import logger

from ..config.config import InteraktConfig
from ..errors import CRMError


class InteraktClient:
    """Interakt 用户追踪接口（按手机号创建或更新）"""

    def __init__(self, config: InteraktConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "Authorization": f"Basic {config.api_key}",
        })

    @property
    def track_user_url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/track/users/"

    def track_user(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """创建或更新用户，服务端按身份幂等"""
        try:
            response = self.session.post(
                self.track_user_url, json=payload, timeout=self.config.timeout
            )
        except requests.RequestException as e:
            raise CRMError(f"Interakt request failed: {e}") from e

        if response.status_code >= 400:
            raise CRMError(
                f"Interakt returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
                body=response.text,
            )

        logger.debug(f"Interakt track user {payload.get('userId')} -> {response.status_code}")
        try:
            return response.json()
        except ValueError:
            return {}

    def close(self) -> None:
        self.session.close()
