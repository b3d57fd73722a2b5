"""
手机号提取与规范化
"""
import re
from typing import Any, Mapping, Optional, Sequence

_NON_PHONE_CHARS = re.compile(r"[^\d+]")
_NON_DIGITS = re.compile(r"\D")

COUNTRY_CODE_FIELDS = ("countryCode", "Country Code")


def extract_phone(document: Mapping[str, Any], fields: Sequence[str]) -> Optional[str]:
    """按候选字段顺序取第一个非空手机号"""
    for name in fields:
        value = document.get(name)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def normalize_phone(raw: Optional[str], default_country_code: str = "+91",
                    country_code: Optional[str] = None) -> Optional[str]:
    """规范化为 +<国家码><号码>

    只保留数字和 +；没有 + 前缀时去掉前导 0 并补国家码。
    """
    if raw is None:
        return None

    cleaned = _NON_PHONE_CHARS.sub("", str(raw))
    if not cleaned:
        return None

    if cleaned.startswith("+"):
        # 只保留开头的 +
        return "+" + cleaned[1:].replace("+", "")

    digits = cleaned.replace("+", "").lstrip("0")
    if not digits:
        return None

    code = str(country_code or default_country_code).strip()
    code = _NON_PHONE_CHARS.sub("", code).replace("+", "")
    return f"+{code}{digits}"


def is_valid_phone(phone: Optional[str], min_digits: int = 10) -> bool:
    if not phone:
        return False
    return len(_NON_DIGITS.sub("", phone)) >= min_digits


def phone_for_document(document: Mapping[str, Any], fields: Sequence[str],
                       default_country_code: str = "+91",
                       min_digits: int = 10) -> Optional[str]:
    """从文档得到可用的手机号，无号码或号码无效时返回 None"""
    raw = extract_phone(document, fields)
    if raw is None:
        return None

    country_code = extract_phone(document, COUNTRY_CODE_FIELDS)
    phone = normalize_phone(raw, default_country_code, country_code)
    return phone if is_valid_phone(phone, min_digits) else None
