"""
探测器

向易受攻击端点发送一次携带原始载荷的 GET 请求，只根据传输层信号判断是否被拦截:

- 403 -> INTERCEPTED (blocked)
- 200 -> DELIVERED (allowed)，JSON 正文仅用于诊断
- 其他状态码 / 超时 / 连接失败 / TLS 失败 -> INCONCLUSIVE (blocked)

传输失败不会抛给调用方，不做任何重试。

使用示例:
    from core.probe import ProbeConfig, ProbeDispatcher

    async with ProbeDispatcher(ProbeConfig(base_url="http://127.0.0.1:8080")) as dispatcher:
        outcome = await dispatcher.probe("<script>alert(1)</script>", timeout=5)
        print(outcome.status_label, outcome.blocked)
"""

import asyncio
import logging
import time
import uuid
from typing import Any, Dict, Optional

import aiohttp
import requests

from core.exceptions import STAGE_PROBE, normalize_transport_error
from utils.logger import preview_payload
from utils.validators import validate_timeout

from .base import SessionHolder
from .config import ProbeConfig
from .models import HTTP_OK, ProbeOutcome

logger = logging.getLogger(__name__)


class ProbeDispatcher(SessionHolder):
    """探测器

    每次调用恰好发出一个请求；载荷原样放入查询参数，只经过传输层 URL 编码。
    """

    def __init__(
        self,
        config: Optional[ProbeConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        sync_session: Optional[requests.Session] = None,
    ):
        self.config = config or ProbeConfig()
        super().__init__(self.config.http, session=session, sync_session=sync_session)

    def build_params(self, payload: str) -> Dict[str, str]:
        """构造查询参数，每次调用生成新的缓存破坏令牌"""
        params = {self.config.param_name: payload}
        if self.config.cache_bust:
            params[self.config.cache_bust_param] = uuid.uuid4().hex
        return params

    def _resolve_timeout(self, timeout: Optional[float]) -> float:
        if timeout is None:
            return self.config.timeout
        return validate_timeout(timeout)

    async def probe(self, payload: str, timeout: Optional[float] = None) -> ProbeOutcome:
        """
        异步探测

        Args:
            payload: 原始载荷
            timeout: 本次探测超时 (秒)，默认使用配置值

        Returns:
            探测结果，传输失败时 http_status 为 None
        """
        timeout = self._resolve_timeout(timeout)
        url = self.config.probe_url
        params = self.build_params(payload)
        logger.debug(f"发送探测: {url} {preview_payload(payload)}")

        started = time.monotonic()
        try:
            session = await self._get_session()
            async with session.get(
                url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=self.config.http.follow_redirects,
                proxy=self.config.http.proxy.for_url(url),
            ) as resp:
                body = await self._read_json(resp) if resp.status == HTTP_OK else None
                outcome = ProbeOutcome.from_response(
                    resp.status, url=url, elapsed_ms=self._elapsed(started), body=body
                )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            return self._transport_failure(e, payload, url, timeout, started)

        self._log_outcome(outcome, payload)
        return outcome

    def probe_sync(self, payload: str, timeout: Optional[float] = None) -> ProbeOutcome:
        """
        同步探测 (requests)

        参数和返回值与 probe() 相同
        """
        timeout = self._resolve_timeout(timeout)
        url = self.config.probe_url
        params = self.build_params(payload)
        logger.debug(f"发送探测: {url} {preview_payload(payload)}")

        started = time.monotonic()
        try:
            resp = self._get_sync_session().get(
                url,
                params=params,
                timeout=(min(self.config.http.connect_timeout, timeout), timeout),
                allow_redirects=self.config.http.follow_redirects,
                proxies=self.config.http.proxy.to_requests(url),
            )
        except requests.exceptions.RequestException as e:
            return self._transport_failure(e, payload, url, timeout, started)

        body = self._parse_json(resp) if resp.status_code == HTTP_OK else None
        resp.close()
        outcome = ProbeOutcome.from_response(
            resp.status_code, url=url, elapsed_ms=self._elapsed(started), body=body
        )
        self._log_outcome(outcome, payload)
        return outcome

    @staticmethod
    async def _read_json(resp: aiohttp.ClientResponse) -> Optional[Dict[str, Any]]:
        """尽量解析 JSON 正文，失败时返回 None"""
        try:
            data = await resp.json(content_type=None)
        except (ValueError, aiohttp.ClientError) as e:
            logger.debug(f"探测响应不是 JSON: {e}")
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _parse_json(resp: requests.Response) -> Optional[Dict[str, Any]]:
        try:
            data = resp.json()
        except ValueError as e:
            logger.debug(f"探测响应不是 JSON: {e}")
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _elapsed(started: float) -> float:
        return (time.monotonic() - started) * 1000

    def _transport_failure(
        self,
        exc: BaseException,
        payload: str,
        url: str,
        timeout: float,
        started: float,
    ) -> ProbeOutcome:
        error = normalize_transport_error(exc, url=url, stage=STAGE_PROBE, timeout=timeout)
        logger.warning(
            f"探测失败，按已拦截处理: {type(error).__name__}: {error.message} "
            f"payload={preview_payload(payload)}"
        )
        return ProbeOutcome.from_transport_error(
            error, url=url, elapsed_ms=self._elapsed(started)
        )

    @staticmethod
    def _log_outcome(outcome: ProbeOutcome, payload: str) -> None:
        logger.info(
            f"探测完成: HTTP {outcome.status_label} -> {outcome.status.value} "
            f"({outcome.elapsed_ms:.0f}ms) payload={preview_payload(payload)}"
        )


__all__ = ["ProbeDispatcher"]
