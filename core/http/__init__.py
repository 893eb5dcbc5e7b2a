"""
HTTP 客户端模块

提供同步 (requests) 和异步 (aiohttp) 会话的统一配置与创建

使用示例:
    from core.http import HTTPClientFactory, HTTPConfig

    config = HTTPConfig.from_env()
    session = HTTPClientFactory.create_sync_session(config)
    url = "http://127.0.0.1:8080/api/health"
    resp = session.get(url, proxies=config.proxy.to_requests(url))
"""

from .client_factory import (
    HTTPClientFactory,
    SecurityWarning,
)
from .config import (
    DEFAULT_USER_AGENT,
    HTTPConfig,
    ProxyConfig,
)

__all__ = [
    # 配置
    "DEFAULT_USER_AGENT",
    "HTTPConfig",
    "ProxyConfig",
    # 客户端
    "HTTPClientFactory",
    "SecurityWarning",
]
