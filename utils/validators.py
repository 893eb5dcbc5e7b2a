#!/usr/bin/env python3
"""
输入验证模块 - WAF-Probe-Harness

提供：
- 探测目标 URL 验证
- 载荷非空校验（空载荷在到达分类器和探测器之前被拒绝）
- 超时参数验证

使用示例:
    from utils.validators import validate_url, validate_payload

    if validate_url("http://127.0.0.1:8080"):
        payload = validate_payload(user_input)
"""

import logging
from typing import Any, List, Optional
from urllib.parse import urlparse

from core.exceptions import ConfigError, InputError

logger = logging.getLogger(__name__)


def validate_url(url: str, allowed_schemes: Optional[List[str]] = None) -> bool:
    """
    验证URL格式

    Args:
        url: 要验证的URL
        allowed_schemes: 允许的协议列表，默认['http', 'https']

    Returns:
        是否为有效URL
    """
    if not url or not isinstance(url, str):
        return False

    if allowed_schemes is None:
        allowed_schemes = ["http", "https"]

    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    if parsed.scheme.lower() not in allowed_schemes:
        return False
    if not parsed.netloc:
        return False

    try:
        # 端口越界时 urlparse 才会在访问 .port 时报错
        parsed.port
    except ValueError:
        return False

    return True


def validate_payload(payload: Any) -> str:
    """
    校验载荷

    载荷原样返回，不做任何裁剪或转换；只拒绝 None、非字符串、空串和纯空白串。

    Raises:
        InputError: 载荷为空
    """
    if payload is None or not isinstance(payload, str):
        raise InputError("请输入要测试的载荷", field="payload")
    if not payload.strip():
        raise InputError("请输入要测试的载荷", field="payload")
    return payload


def validate_timeout(timeout: Any, field: str = "timeout") -> float:
    """
    校验超时参数

    Raises:
        ConfigError: 超时不是正数
    """
    try:
        value = float(timeout)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{field} 必须是数字", details={field: timeout}, cause=e)
    if value <= 0:
        raise ConfigError(f"{field} 必须大于 0", details={field: timeout})
    return value


__all__ = [
    "validate_url",
    "validate_payload",
    "validate_timeout",
]
