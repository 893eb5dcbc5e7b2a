"""
Pytest 配置文件

为测试设置 Python 路径，确保能正确导入项目模块，
并提供进程内的探测目标服务器等共享 fixture
"""

import sys
from pathlib import Path

# 添加项目根目录到 Python 路径
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from aiohttp import test_utils, web


# ==================== 探测目标服务器 ====================


@dataclass
class TargetServer:
    """进程内探测目标，记录收到的每个查询"""

    url: str
    queries: List[Dict[str, str]] = field(default_factory=list)


def _make_target_app(
    status: int,
    delay: float,
    body: Optional[Dict[str, Any]],
    queries: List[Dict[str, str]],
) -> web.Application:
    async def vulnerable(request: web.Request) -> web.StreamResponse:
        queries.append(dict(request.query))
        if delay:
            await asyncio.sleep(delay)
        if status == 200:
            payload = request.query.get("q", "")
            return web.json_response(
                body if body is not None else {"success": True, "receivedPayload": payload}
            )
        return web.Response(status=status, text="Blocked by WAF")

    app = web.Application()
    app.router.add_get("/vulnerable", vulnerable)
    return app


@pytest_asyncio.fixture
async def target_server():
    """探测目标服务器工厂

    用法:
        server = await target_server(status=403)
        config = ProbeConfig(base_url=server.url)
    """
    servers: List[test_utils.TestServer] = []

    async def _start(
        status: int = 200,
        delay: float = 0.0,
        body: Optional[Dict[str, Any]] = None,
    ) -> TargetServer:
        queries: List[Dict[str, str]] = []
        server = test_utils.TestServer(_make_target_app(status, delay, body, queries))
        await server.start_server()
        servers.append(server)
        return TargetServer(url=f"http://{server.host}:{server.port}", queries=queries)

    yield _start

    for server in servers:
        await server.close()


@pytest_asyncio.fixture
async def demo_client():
    """演示目标服务器的测试客户端"""
    from core.server import ServerConfig, create_app

    client = test_utils.TestClient(test_utils.TestServer(create_app(ServerConfig())))
    await client.start_server()
    yield client
    await client.close()


@pytest.fixture
def unreachable_url() -> str:
    """一个没有进程监听的本地地址"""
    return f"http://127.0.0.1:{test_utils.unused_port()}"


# ==================== 判定相关 Fixtures ====================


@pytest.fixture
def statistics():
    """全新的会话统计"""
    from core.verdict import StatisticsRecorder

    return StatisticsRecorder()


@pytest.fixture
def probe_outcome():
    """探测结果工厂，status=None 表示传输失败"""
    from core.exceptions import TimeoutError as ProbeTimeoutError
    from core.probe import ProbeOutcome

    def _create(status: Optional[int] = 200) -> ProbeOutcome:
        if status is None:
            return ProbeOutcome.from_transport_error(
                ProbeTimeoutError("timed out", timeout=1.0), url="http://target/vulnerable"
            )
        return ProbeOutcome.from_response(status, url="http://target/vulnerable")

    return _create


@pytest.fixture
def classification():
    """分类结果工厂"""
    from core.detectors import AttackClass, ClassificationResult

    def _create(
        malicious: bool = True, attack_class: AttackClass = AttackClass.XSS
    ) -> ClassificationResult:
        if not malicious:
            return ClassificationResult.benign(attack_class)
        return ClassificationResult(
            is_malicious=True,
            attack_class=attack_class,
            matched_rule="xss_script_tag",
            confidence=97,
        )

    return _create
