"""
HTTP 客户端工厂

为探测器和分析器创建同步 (requests) 与异步 (aiohttp) 会话，
统一 SSL 策略、超时和 User-Agent。会话由调用方持有并负责关闭。

探测请求必须一次完成: 同步 Session 显式关闭 urllib3 的重试，
异步客户端本身不会重试。代理不挂在会话上，由调用方按请求传入
(参见 ProxyConfig.for_url / to_requests)。
"""

import logging
import warnings

import aiohttp
import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import HTTPConfig

logger = logging.getLogger(__name__)


class SecurityWarning(UserWarning):
    """安全警告"""

    pass


class HTTPClientFactory:
    """HTTP 会话工厂"""

    @classmethod
    def create_sync_session(cls, config: HTTPConfig) -> requests.Session:
        """创建同步 Session"""
        session = requests.Session()
        # 不读取环境变量中的代理和证书设置，只认 HTTPConfig
        session.trust_env = False

        session.verify = config.verify_ssl
        if not config.verify_ssl:
            cls._warn_ssl_disabled()

        # 不重试: 一次测试只发送一次探测请求
        adapter = HTTPAdapter(
            max_retries=Retry(total=0, read=False, redirect=False, raise_on_status=False)
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update(config.merge_headers())
        return session

    @classmethod
    def create_async_session(
        cls,
        config: HTTPConfig,
        concurrency: int = 20,
    ) -> aiohttp.ClientSession:
        """创建异步 Session

        必须在运行中的事件循环内调用

        Args:
            config: HTTP 配置
            concurrency: 最大并发连接数
        """
        if not config.verify_ssl:
            cls._warn_ssl_disabled()

        timeout_obj = aiohttp.ClientTimeout(
            total=config.timeout, sock_connect=config.connect_timeout
        )
        connector = aiohttp.TCPConnector(limit=concurrency, ssl=config.verify_ssl)

        return aiohttp.ClientSession(
            connector=connector, timeout=timeout_obj, headers=config.merge_headers()
        )

    @classmethod
    def _warn_ssl_disabled(cls):
        """发出 SSL 禁用警告"""
        warnings.warn(
            "SSL 验证已禁用，只应在测试环境或明确信任的网络中使用",
            SecurityWarning,
            stacklevel=3,
        )
        logger.warning("SSL 验证已禁用")
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
