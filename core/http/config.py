"""
HTTP 客户端配置

提供超时、SSL、请求头、代理等设置，支持从环境变量和字典加载。
探测请求必须是一次性的，因此这里不提供任何重试配置。
"""

import copy
import ipaddress
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

from core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "WAF-Probe-Harness/1.0"

LOOPBACK_HOSTS = ("localhost",)


def _split_hosts(value: Optional[str]) -> List[str]:
    return [host.strip().lower() for host in (value or "").split(",") if host.strip()]


def _is_loopback(host: str) -> bool:
    if host in LOOPBACK_HOSTS or host.endswith(".localhost"):
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


@dataclass
class ProxyConfig:
    """代理配置

    回环地址 (localhost、127.0.0.0/8、::1) 和 no_proxy 中的主机总是直连。
    no_proxy 条目按主机名后缀匹配，"*" 表示全部直连。
    """

    http_proxy: Optional[str] = None
    https_proxy: Optional[str] = None
    no_proxy: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "ProxyConfig":
        """从环境变量加载代理配置"""
        return cls(
            http_proxy=os.environ.get("HTTP_PROXY") or os.environ.get("http_proxy"),
            https_proxy=os.environ.get("HTTPS_PROXY") or os.environ.get("https_proxy"),
            no_proxy=_split_hosts(os.environ.get("NO_PROXY") or os.environ.get("no_proxy")),
        )

    def bypasses(self, url: str) -> bool:
        """该 URL 是否直连"""
        host = (urlsplit(url).hostname or "").lower()
        if not host or _is_loopback(host):
            return True
        for entry in self.no_proxy:
            if entry == "*":
                return True
            suffix = entry.lstrip(".")
            if host == suffix or host.endswith("." + suffix):
                return True
        return False

    def for_url(self, url: str) -> Optional[str]:
        """获取某个 URL 应使用的代理，直连时返回 None"""
        if self.bypasses(url):
            return None
        if url.startswith("https://"):
            return self.https_proxy or self.http_proxy
        return self.http_proxy

    def to_requests(self, url: str) -> Dict[str, str]:
        """转换为 requests 单次请求的 proxies 参数"""
        proxy = self.for_url(url)
        if proxy is None:
            return {}
        return {urlsplit(url).scheme: proxy}


@dataclass
class HTTPConfig:
    """HTTP 客户端统一配置"""

    # 超时配置 (秒)
    timeout: float = 10.0  # 总超时
    connect_timeout: float = 5.0  # 连接超时

    # SSL 配置
    verify_ssl: bool = True

    # 重定向: 探测结果只看目标端点自身的状态码
    follow_redirects: bool = False

    # 默认请求头
    default_headers: Dict[str, str] = field(
        default_factory=lambda: {
            "User-Agent": DEFAULT_USER_AGENT,
            "Accept": "application/json, text/html;q=0.9, */*;q=0.8",
            "Cache-Control": "no-cache",
        }
    )

    proxy: ProxyConfig = field(default_factory=ProxyConfig)

    def merge_headers(self, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """
        合并默认请求头和自定义请求头

        Args:
            headers: 自定义请求头

        Returns:
            合并后的请求头
        """
        merged = self.default_headers.copy()
        if headers:
            merged.update(headers)
        return merged

    @property
    def user_agent(self) -> str:
        return self.default_headers.get("User-Agent", DEFAULT_USER_AGENT)

    def set_user_agent(self, user_agent: str) -> None:
        """设置 User-Agent"""
        self.default_headers["User-Agent"] = user_agent

    def set_proxy(self, proxy: str) -> None:
        """设置统一代理"""
        self.proxy.http_proxy = proxy
        self.proxy.https_proxy = proxy

    @classmethod
    def from_env(cls) -> "HTTPConfig":
        """
        从环境变量加载配置

        支持的环境变量:
        - HTTP_TIMEOUT: 总超时时间
        - HTTP_CONNECT_TIMEOUT: 连接超时
        - HTTP_VERIFY_SSL: 是否验证 SSL (true/false)
        - HTTP_USER_AGENT: User-Agent
        - HTTP_PROXY / HTTPS_PROXY / NO_PROXY: 代理配置

        Raises:
            ConfigError: 超时不是数字
        """
        config = cls()

        timeouts = (("HTTP_TIMEOUT", "timeout"), ("HTTP_CONNECT_TIMEOUT", "connect_timeout"))
        for name, attr in timeouts:
            value = os.environ.get(name)
            if not value:
                continue
            try:
                setattr(config, attr, float(value))
            except ValueError as e:
                raise ConfigError(f"无效的环境变量 {name}", details={name: value}, cause=e)

        if verify_ssl := os.environ.get("HTTP_VERIFY_SSL"):
            config.verify_ssl = verify_ssl.lower() in ("true", "1", "yes")

        if user_agent := os.environ.get("HTTP_USER_AGENT"):
            config.set_user_agent(user_agent)

        config.proxy = ProxyConfig.from_env()

        logger.debug(
            f"从环境变量加载 HTTP 配置: timeout={config.timeout}, "
            f"verify_ssl={config.verify_ssl}, proxy={config.proxy.http_proxy}"
        )

        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HTTPConfig":
        """
        从字典加载配置

        Args:
            data: 配置字典

        Returns:
            HTTPConfig 实例
        """
        config = cls()

        if "timeout" in data:
            config.timeout = float(data["timeout"])
        if "connect_timeout" in data:
            config.connect_timeout = float(data["connect_timeout"])
        if "verify_ssl" in data:
            config.verify_ssl = bool(data["verify_ssl"])
        if "follow_redirects" in data:
            config.follow_redirects = bool(data["follow_redirects"])
        if "headers" in data:
            config.default_headers.update(data["headers"])
        if "user_agent" in data:
            config.set_user_agent(data["user_agent"])

        if "proxy" in data:
            proxy_data = data["proxy"]
            if isinstance(proxy_data, str):
                config.set_proxy(proxy_data)
            elif isinstance(proxy_data, dict):
                config.proxy.http_proxy = proxy_data.get("http")
                config.proxy.https_proxy = proxy_data.get("https")
                no_proxy = proxy_data.get("no_proxy") or []
                if isinstance(no_proxy, str):
                    no_proxy = _split_hosts(no_proxy)
                config.proxy.no_proxy = [host.lower() for host in no_proxy]

        return config

    def to_dict(self) -> Dict[str, Any]:
        """导出为字典"""
        return {
            "timeout": self.timeout,
            "connect_timeout": self.connect_timeout,
            "verify_ssl": self.verify_ssl,
            "follow_redirects": self.follow_redirects,
            "headers": self.default_headers.copy(),
            "proxy": {
                "http": self.proxy.http_proxy,
                "https": self.proxy.https_proxy,
                "no_proxy": list(self.proxy.no_proxy),
            },
        }

    def copy(self) -> "HTTPConfig":
        """创建配置副本"""
        return copy.deepcopy(self)


__all__ = [
    "DEFAULT_USER_AGENT",
    "HTTPConfig",
    "ProxyConfig",
]
