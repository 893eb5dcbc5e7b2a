"""
传输层异常

探测请求和分析请求在拿到 HTTP 响应之前失败时使用。
探测器把它们记为 INCONCLUSIVE 的探测结果，不向调用方抛出；
远程分析器把它们作为 AnalysisError 的 cause 抛出。
"""

from __future__ import annotations

import asyncio
import ssl
from typing import Any, Dict, Optional, Type

import aiohttp
import requests

from .base import WAFProbeError

STAGE_PROBE = "probe"
STAGE_ANALYSIS = "analysis"


class TransportError(WAFProbeError):
    """
    请求未能得到响应

    属性:
        url: 请求地址
        stage: probe (探测请求) 或 analysis (分析请求)
        timeout: 本次请求使用的超时 (秒)
    """

    code = "TRANSPORT_FAILED"

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        stage: str = STAGE_PROBE,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.url = url
        self.stage = stage
        self.timeout = timeout
        self.details["stage"] = stage
        if url:
            self.details["url"] = url
        if timeout is not None:
            self.details["timeout"] = timeout


class ConnectionError(TransportError):
    """连接被拒绝、DNS 解析失败或连接中途断开"""

    code = "TRANSPORT_CONNECTION"


class TimeoutError(TransportError):
    """在超时时间内没有收到响应"""

    code = "TRANSPORT_TIMEOUT"


class SSLError(TransportError):
    """TLS 握手或证书验证失败"""

    code = "TRANSPORT_TLS"


# 按顺序匹配，子类排在父类之前
_LIBRARY_ERRORS = (
    (requests.exceptions.SSLError, SSLError),
    (requests.exceptions.Timeout, TimeoutError),
    (requests.exceptions.ConnectionError, ConnectionError),
    (aiohttp.ClientSSLError, SSLError),
    (aiohttp.ServerTimeoutError, TimeoutError),
    (aiohttp.ClientConnectionError, ConnectionError),
    (asyncio.TimeoutError, TimeoutError),
    (ssl.SSLError, SSLError),
    (OSError, ConnectionError),
)


def transport_error_type(exc: BaseException) -> Type[TransportError]:
    """requests / aiohttp / asyncio 异常对应的 TransportError 子类"""
    for library_error, mapped in _LIBRARY_ERRORS:
        if isinstance(exc, library_error):
            return mapped
    return TransportError


def normalize_transport_error(
    exc: BaseException,
    url: Optional[str] = None,
    stage: str = STAGE_PROBE,
    timeout: Optional[float] = None,
) -> TransportError:
    """
    把底层 HTTP 库的异常转换为 TransportError

    已经是 TransportError 的异常原样返回。
    """
    if isinstance(exc, TransportError):
        return exc

    details: Dict[str, Any] = {"library_error": type(exc).__name__}
    return transport_error_type(exc)(
        str(exc) or type(exc).__name__,
        url=url,
        stage=stage,
        timeout=timeout,
        details=details,
        cause=exc,
    )


__all__ = [
    "STAGE_PROBE",
    "STAGE_ANALYSIS",
    "TransportError",
    "ConnectionError",
    "TimeoutError",
    "SSLError",
    "transport_error_type",
    "normalize_transport_error",
]
