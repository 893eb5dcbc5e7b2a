"""
core.probe.dispatcher 单元测试

使用进程内的 aiohttp 目标服务器测试探测器:
状态码映射、载荷原样送达、缓存破坏参数、超时与连接失败
"""

import asyncio
import logging
import re

import aiohttp
import pytest

from core.exceptions import ConfigError
from core.http import HTTPConfig
from core.probe import ProbeConfig, ProbeDispatcher, ProbeOutcome, ProbeStatus

pytestmark = [pytest.mark.unit, pytest.mark.integration]

RAW_PAYLOAD = "<script>alert('x')</script> & a=b \"q\""


class TestProbeStatusMapping:
    """测试状态码映射"""

    @pytest.mark.parametrize(
        "http_status,expected",
        [
            (403, ProbeStatus.INTERCEPTED),
            (200, ProbeStatus.DELIVERED),
            (302, ProbeStatus.INCONCLUSIVE),
            (404, ProbeStatus.INCONCLUSIVE),
            (500, ProbeStatus.INCONCLUSIVE),
            (None, ProbeStatus.INCONCLUSIVE),
        ],
    )
    def test_from_http_status(self, http_status, expected):
        """测试只有 403 和 200 有确定含义"""
        assert ProbeStatus.from_http_status(http_status) is expected

    def test_body_kept_only_for_200(self):
        """测试只保留 200 响应的正文"""
        body = {"receivedPayload": "x"}
        assert ProbeOutcome.from_response(200, body=body).received_payload == "x"
        assert ProbeOutcome.from_response(403, body=body).body is None

    def test_str(self):
        """测试文本格式"""
        assert str(ProbeOutcome.from_response(403)) == "HTTP 403 -> BLOCKED (intercepted)"
        assert str(ProbeOutcome.from_response(200)) == "HTTP 200 -> ALLOWED (delivered)"


class TestAsyncProbe:
    """测试异步探测"""

    @pytest.mark.asyncio
    async def test_intercepted(self, target_server):
        """测试 403 判定为已拦截"""
        server = await target_server(status=403)
        async with ProbeDispatcher(ProbeConfig(base_url=server.url)) as dispatcher:
            outcome = await dispatcher.probe("<script>alert(1)</script>")

        assert outcome.http_status == 403
        assert outcome.status is ProbeStatus.INTERCEPTED
        assert outcome.blocked is True
        assert outcome.error is None
        assert len(server.queries) == 1

    @pytest.mark.asyncio
    async def test_delivered(self, target_server):
        """测试 200 判定为已放行，并保留回显正文"""
        server = await target_server(status=200)
        async with ProbeDispatcher(ProbeConfig(base_url=server.url)) as dispatcher:
            outcome = await dispatcher.probe("hello world")

        assert outcome.http_status == 200
        assert outcome.blocked is False
        assert outcome.received_payload == "hello world"
        assert outcome.url == f"{server.url}/vulnerable"
        assert outcome.elapsed_ms >= 0

    @pytest.mark.asyncio
    async def test_non_json_200_still_delivered(self, target_server):
        """测试正文不是 JSON 对象时只影响诊断信息"""
        server = await target_server(status=200, body=["not", "an", "object"])
        async with ProbeDispatcher(ProbeConfig(base_url=server.url)) as dispatcher:
            outcome = await dispatcher.probe("hello")

        assert outcome.status is ProbeStatus.DELIVERED
        assert outcome.body is None
        assert outcome.received_payload is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [302, 404, 500, 503])
    async def test_other_status_inconclusive(self, target_server, status):
        """测试其他状态码按已拦截处理"""
        server = await target_server(status=status)
        async with ProbeDispatcher(ProbeConfig(base_url=server.url)) as dispatcher:
            outcome = await dispatcher.probe("x")

        assert outcome.http_status == status
        assert outcome.status is ProbeStatus.INCONCLUSIVE
        assert outcome.blocked is True

    @pytest.mark.asyncio
    async def test_payload_delivered_unmodified(self, target_server):
        """测试载荷原样出现在查询参数中"""
        server = await target_server()
        async with ProbeDispatcher(ProbeConfig(base_url=server.url)) as dispatcher:
            outcome = await dispatcher.probe(RAW_PAYLOAD)

        assert server.queries[0]["q"] == RAW_PAYLOAD
        assert outcome.received_payload == RAW_PAYLOAD

    @pytest.mark.asyncio
    async def test_cache_bust_unique(self, target_server):
        """测试每次探测的缓存破坏令牌都不同"""
        server = await target_server()
        async with ProbeDispatcher(ProbeConfig(base_url=server.url)) as dispatcher:
            await dispatcher.probe("same")
            await dispatcher.probe("same")

        tokens = [query["_"] for query in server.queries]
        assert len(tokens) == 2
        assert tokens[0] != tokens[1]
        assert all(re.fullmatch(r"[0-9a-f]{32}", token) for token in tokens)

    @pytest.mark.asyncio
    async def test_cache_bust_disabled(self, target_server):
        """测试关闭缓存破坏"""
        server = await target_server()
        config = ProbeConfig(base_url=server.url, cache_bust=False)
        async with ProbeDispatcher(config) as dispatcher:
            await dispatcher.probe("x")

        assert server.queries == [{"q": "x"}]

    @pytest.mark.asyncio
    async def test_custom_param_name(self, target_server):
        """测试自定义载荷参数名"""
        server = await target_server(status=403)
        config = ProbeConfig(base_url=server.url, param_name="search")
        async with ProbeDispatcher(config) as dispatcher:
            await dispatcher.probe("x")

        assert server.queries[0]["search"] == "x"
        assert "q" not in server.queries[0]

    @pytest.mark.asyncio
    async def test_timeout(self, target_server, caplog):
        """测试超时映射为传输失败且不重试"""
        server = await target_server(status=200, delay=1.0)
        with caplog.at_level(logging.WARNING, logger="core.probe.dispatcher"):
            async with ProbeDispatcher(ProbeConfig(base_url=server.url)) as dispatcher:
                outcome = await dispatcher.probe("$(whoami)", timeout=0.1)

        assert outcome.http_status is None
        assert outcome.status_label == "ERROR"
        assert outcome.transport_failed is True
        assert outcome.blocked is True
        assert outcome.error_type == "TimeoutError"
        assert len(server.queries) == 1
        assert "探测失败" in caplog.text

    @pytest.mark.asyncio
    async def test_connection_refused(self, unreachable_url):
        """测试连接失败映射为传输失败"""
        async with ProbeDispatcher(ProbeConfig(base_url=unreachable_url)) as dispatcher:
            outcome = await dispatcher.probe("x", timeout=2)

        assert outcome.http_status is None
        assert outcome.blocked is True
        assert outcome.error_type == "ConnectionError"
        assert outcome.error

    @pytest.mark.asyncio
    @pytest.mark.parametrize("timeout", [0, -1, "abc"])
    async def test_invalid_timeout(self, target_server, timeout):
        """测试无效超时在发送请求前被拒绝"""
        server = await target_server()
        async with ProbeDispatcher(ProbeConfig(base_url=server.url)) as dispatcher:
            with pytest.raises(ConfigError):
                await dispatcher.probe("x", timeout=timeout)

        assert server.queries == []

    @pytest.mark.asyncio
    async def test_concurrent_probes(self, target_server):
        """测试并发探测互不影响"""
        server = await target_server()
        payloads = [f"payload-{i}" for i in range(10)]
        async with ProbeDispatcher(ProbeConfig(base_url=server.url)) as dispatcher:
            outcomes = await asyncio.gather(*[dispatcher.probe(p) for p in payloads])

        assert [o.received_payload for o in outcomes] == payloads
        assert len(server.queries) == 10

    @pytest.mark.asyncio
    async def test_injected_session_not_closed(self, target_server):
        """测试注入的会话不会被探测器关闭"""
        server = await target_server(status=403)
        session = aiohttp.ClientSession()
        try:
            dispatcher = ProbeDispatcher(ProbeConfig(base_url=server.url), session=session)
            outcome = await dispatcher.probe("x")
            await dispatcher.close()
            assert outcome.http_status == 403
            assert session.closed is False
        finally:
            await session.close()


class TestSyncProbe:
    """测试同步探测

    目标服务器运行在测试事件循环上，同步调用放到线程池中执行
    """

    @staticmethod
    async def _run_sync(dispatcher: ProbeDispatcher, payload: str, timeout=None) -> ProbeOutcome:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, dispatcher.probe_sync, payload, timeout)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,expected",
        [
            (403, ProbeStatus.INTERCEPTED),
            (200, ProbeStatus.DELIVERED),
            (500, ProbeStatus.INCONCLUSIVE),
        ],
    )
    async def test_status_mapping(self, target_server, status, expected):
        """测试同步路径的状态码映射与异步一致"""
        server = await target_server(status=status)
        with ProbeDispatcher(ProbeConfig(base_url=server.url)) as dispatcher:
            outcome = await self._run_sync(dispatcher, "x")

        assert outcome.http_status == status
        assert outcome.status is expected

    @pytest.mark.asyncio
    async def test_payload_delivered_unmodified(self, target_server):
        """测试同步路径载荷原样送达"""
        server = await target_server()
        with ProbeDispatcher(ProbeConfig(base_url=server.url)) as dispatcher:
            outcome = await self._run_sync(dispatcher, RAW_PAYLOAD)

        assert server.queries[0]["q"] == RAW_PAYLOAD
        assert outcome.received_payload == RAW_PAYLOAD
        assert re.fullmatch(r"[0-9a-f]{32}", server.queries[0]["_"])

    @pytest.mark.asyncio
    async def test_timeout(self, target_server):
        """测试同步路径超时映射为 TimeoutError"""
        server = await target_server(status=200, delay=1.0)
        with ProbeDispatcher(ProbeConfig(base_url=server.url)) as dispatcher:
            outcome = await self._run_sync(dispatcher, "x", 0.1)

        assert outcome.transport_failed is True
        assert outcome.blocked is True
        assert outcome.error_type == "TimeoutError"
        assert len(server.queries) == 1

    def test_connection_refused(self, unreachable_url):
        """测试同步路径连接失败"""
        with ProbeDispatcher(ProbeConfig(base_url=unreachable_url)) as dispatcher:
            outcome = dispatcher.probe_sync("x", timeout=2)

        assert outcome.http_status is None
        assert outcome.error_type == "ConnectionError"

    def test_invalid_timeout(self):
        """测试同步路径无效超时"""
        with ProbeDispatcher(ProbeConfig()) as dispatcher:
            with pytest.raises(ConfigError):
                dispatcher.probe_sync("x", timeout=0)


class TestProxySelection:
    """测试代理选择: 回环目标直连，其他目标经过代理"""

    @staticmethod
    def _config(base_url: str, proxy_url: str) -> ProbeConfig:
        http = HTTPConfig()
        http.set_proxy(proxy_url)
        return ProbeConfig(base_url=base_url, http=http)

    @pytest.mark.asyncio
    async def test_loopback_target_ignores_proxy(self, target_server, unreachable_url):
        """测试代理不可用时本地目标仍然得到真实状态码"""
        server = await target_server(status=200)
        config = self._config(server.url, unreachable_url)
        async with ProbeDispatcher(config) as dispatcher:
            outcome = await dispatcher.probe("<script>alert(1)</script>")

        assert outcome.http_status == 200
        assert outcome.blocked is False
        assert len(server.queries) == 1

    @pytest.mark.asyncio
    async def test_loopback_target_ignores_proxy_sync(self, target_server, unreachable_url):
        server = await target_server(status=200)
        config = self._config(server.url, unreachable_url)
        loop = asyncio.get_running_loop()
        with ProbeDispatcher(config) as dispatcher:
            outcome = await loop.run_in_executor(None, dispatcher.probe_sync, "x")

        assert outcome.http_status == 200
        assert len(server.queries) == 1

    @pytest.mark.asyncio
    async def test_remote_target_uses_proxy(self, unreachable_url):
        """测试非回环目标走代理，代理不可用时结果无法确认"""
        config = self._config("http://waf.example.com", unreachable_url)
        async with ProbeDispatcher(config) as dispatcher:
            outcome = await dispatcher.probe("x", timeout=2)

        assert outcome.status is ProbeStatus.INCONCLUSIVE
        assert outcome.error_type == "ConnectionError"

    def test_remote_target_uses_proxy_sync(self, unreachable_url):
        config = self._config("http://waf.example.com", unreachable_url)
        with ProbeDispatcher(config) as dispatcher:
            outcome = dispatcher.probe_sync("x", timeout=2)

        assert outcome.status is ProbeStatus.INCONCLUSIVE
        assert outcome.error_type == "ConnectionError"


class TestBuildParams:
    """测试查询参数构造"""

    def test_params(self):
        """测试载荷和缓存破坏参数"""
        dispatcher = ProbeDispatcher(ProbeConfig())
        params = dispatcher.build_params("' OR '1'='1")
        assert params["q"] == "' OR '1'='1"
        assert len(params["_"]) == 32
