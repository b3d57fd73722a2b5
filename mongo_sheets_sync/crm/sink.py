"""
联系人画像写入适配器
"""
from typing import Any, Dict, Mapping, Optional, Sequence

from loguru import logger

from ..config.config import InteraktConfig
from ..core.retry import RetryExecutor
from ..core.row_codec import document_id, json_safe
from .client import InteraktClient
from .phone import phone_for_document


class ProfileSink:
    """把文档推送为 Interakt 联系人

    本地不保存任何 CRM 状态，每次都发送完整 traits。
    """

    def __init__(self, client: InteraktClient, config: InteraktConfig,
                 phone_fields: Sequence[str], retry: RetryExecutor):
        self.client = client
        self.config = config
        self.phone_fields = list(phone_fields)
        self.retry = retry

    def build_payload(self, document: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """构建请求体，没有可用手机号时返回 None"""
        phone = phone_for_document(
            document,
            self.phone_fields,
            self.config.default_country_code,
            self.config.min_phone_digits,
        )
        if phone is None:
            return None

        traits = json_safe(document)
        traits["phoneNumber"] = phone
        traits["source"] = self.config.source

        return {
            "userId": document_id(document),
            "phoneNumber": phone,
            "traits": traits,
            "add_to_sales_cycle": self.config.add_to_sales_cycle,
            "lead_status_crm": self.config.lead_status,
            "tags": [self.config.tag],
        }

    def upsert(self, document: Mapping[str, Any]) -> bool:
        """创建或更新联系人，跳过或失败时返回 False，不抛异常"""
        entity_id = document_id(document)
        payload = self.build_payload(document)
        if payload is None:
            logger.warning(f"Skipping Interakt sync: no valid phone number for {entity_id}")
            return False

        result = self.retry.run(
            lambda: self.client.track_user(payload), f"interaktUpsert({entity_id})"
        )
        if result:
            logger.info(f"Synced {entity_id} to Interakt [{self.config.tag}]: {payload['phoneNumber']}")
        return result.success
