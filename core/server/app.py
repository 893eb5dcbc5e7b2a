"""
演示目标服务器 (aiohttp.web)

提供一个故意不做任何防护的端点和一个分析端点，供探测器和远程分析器使用。
服务器本身不拦截任何请求，拦截由部署在它前面的 WAF 完成。

路由:
    GET  /vulnerable?q=|search=|input=   易受攻击端点，回显收到的载荷
    POST /api/analyze                    分析端点
    POST /api/test/{attack_class}        按攻击类型分析 (xss / sqli / rce)
    GET  /api/stats                      服务端分析计数
    GET  /api/health                     健康检查

使用示例:
    from core.server import ServerConfig, run_server
    run_server(ServerConfig(port=8080))
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote

from aiohttp import web

from core.detectors import AttackClass, ClassificationResult, PatternClassifier, get_classifier
from core.exceptions import InputError
from utils.logger import preview_payload
from utils.validators import validate_payload

from .config import ServerConfig

logger = logging.getLogger(__name__)

PAYLOAD_REQUIRED = "Payload is required"

# 各攻击类型在 /api/test 请求体中携带上下文的字段名
CONTEXT_FIELDS = {
    AttackClass.XSS: "context",
    AttackClass.SQL_INJECTION: "type",
    AttackClass.COMMAND_EXECUTION: "method",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class AnalysisCounters:
    """服务端分析计数"""

    total: int = 0
    malicious: int = 0
    benign: int = 0
    by_class: Dict[str, int] = field(
        default_factory=lambda: {attack_class.value: 0 for attack_class in AttackClass}
    )
    last_updated: Optional[str] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, result: ClassificationResult) -> None:
        with self._lock:
            self.total += 1
            if result.is_malicious:
                self.malicious += 1
                self.by_class[result.attack_class.value] += 1
            else:
                self.benign += 1
            self.last_updated = _now()

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "totalRequests": self.total,
                "maliciousRequests": self.malicious,
                "benignRequests": self.benign,
                "topAttackTypes": [
                    {"type": attack_class.display_name, "count": self.by_class[attack_class.value]}
                    for attack_class in AttackClass
                ],
                "lastUpdated": self.last_updated or _now(),
            }


CONFIG_KEY = web.AppKey("config", ServerConfig)
CLASSIFIER_KEY = web.AppKey("classifier", PatternClassifier)
COUNTERS_KEY = web.AppKey("counters", AnalysisCounters)


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"success": False, "error": message}, status=status)


async def _read_body(request: web.Request) -> Dict[str, Any]:
    """读取 JSON 请求体，表单提交也接受"""
    try:
        if request.content_type == "application/x-www-form-urlencoded":
            return dict(await request.post())
        if not request.can_read_body:
            return {}
        data = await request.json()
    except ValueError as e:
        # JSONDecodeError 和 UnicodeDecodeError
        raise InputError("Invalid JSON body", field="body", cause=e)
    if not isinstance(data, dict):
        raise InputError("Invalid JSON body", field="body")
    return data


def _classify(
    request: web.Request, payload: str, attack_class: AttackClass
) -> ClassificationResult:
    result = request.app[CLASSIFIER_KEY].classify(payload, attack_class)
    request.app[COUNTERS_KEY].record(result)
    logger.debug(
        f"{request.path} [{attack_class.value}] malicious={result.is_malicious} "
        f"payload={preview_payload(payload)}"
    )
    return result


async def vulnerable(request: web.Request) -> web.Response:
    """易受攻击端点: 原样回显查询参数中的载荷"""
    query = request.query
    payload = query.get("q") or query.get("search") or query.get("input") or ""
    result = _classify(request, payload, AttackClass.XSS)
    timestamp = _now()

    return web.json_response(
        {
            "success": True,
            "attackType": AttackClass.XSS.display_name,
            "submittedPayload": payload,
            "receivedPayload": payload,
            "context": "query_parameter",
            "timestamp": timestamp,
            "serverProcessed": True,
            "isMalicious": result.is_malicious,
            "matchedPattern": result.matched_pattern,
        }
    )


async def analyze(request: web.Request) -> web.Response:
    """分析端点: {payload, attackClassHint} -> 分类结果"""
    try:
        body = await _read_body(request)
        payload = validate_payload(body.get("payload"))
    except InputError as e:
        return _error(400, PAYLOAD_REQUIRED if e.field == "payload" else e.message)

    try:
        attack_class = AttackClass.parse(body.get("attackClassHint") or AttackClass.XSS)
    except InputError:
        return _error(400, f"Unknown attack class: {body.get('attackClassHint')}")

    result = _classify(request, payload, attack_class)
    return web.json_response(
        {
            "success": True,
            "attackClass": attack_class.value,
            "isMalicious": result.is_malicious,
            "matchedRule": result.matched_rule,
            "matchedPattern": result.matched_pattern,
            "confidence": result.confidence,
            "receivedPayload": payload,
            "timestamp": _now(),
        }
    )


async def attack_test(request: web.Request) -> web.Response:
    """按攻击类型分析提交的载荷"""
    try:
        attack_class = AttackClass.parse(request.match_info["attack_class"])
    except InputError:
        return _error(404, "Endpoint not found")

    try:
        body = await _read_body(request)
        payload = validate_payload(body.get("payload"))
    except InputError as e:
        return _error(400, PAYLOAD_REQUIRED if e.field == "payload" else e.message)

    result = _classify(request, payload, attack_class)
    context_field = CONTEXT_FIELDS[attack_class]
    response = {
        "success": True,
        "attackType": attack_class.display_name,
        "submittedPayload": payload,
        "receivedPayload": payload,
        context_field: body.get(context_field) or attack_class.context_label,
        "timestamp": _now(),
        "serverProcessed": True,
        "isMalicious": result.is_malicious,
        "matchedPattern": result.matched_pattern,
    }
    if attack_class is AttackClass.XSS:
        response["testUrl"] = f"/vulnerable?q={quote(payload, safe='')}"

    delay = request.app[CONFIG_KEY].response_delay
    if delay > 0:
        await asyncio.sleep(delay)
    return web.json_response(response)


async def stats(request: web.Request) -> web.Response:
    return web.json_response(request.app[COUNTERS_KEY].to_dict())


async def health(request: web.Request) -> web.Response:
    return web.json_response(
        {
            "status": "healthy",
            "timestamp": _now(),
            "version": request.app[CONFIG_KEY].version,
        }
    )


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """统一 JSON 错误响应"""
    try:
        return await handler(request)
    except web.HTTPNotFound:
        return _error(404, "Endpoint not found")
    except web.HTTPMethodNotAllowed:
        return _error(405, "Method not allowed")
    except web.HTTPException:
        raise
    except Exception:
        logger.exception(f"请求处理失败: {request.method} {request.path}")
        return _error(500, "Internal server error")


def create_app(
    config: Optional[ServerConfig] = None,
    classifier: Optional[PatternClassifier] = None,
) -> web.Application:
    """
    创建演示目标服务器应用

    Args:
        config: 服务器配置
        classifier: 分类器，默认使用内置规则
    """
    app = web.Application(middlewares=[error_middleware])
    app[CONFIG_KEY] = config or ServerConfig()
    app[CLASSIFIER_KEY] = classifier or get_classifier()
    app[COUNTERS_KEY] = AnalysisCounters()

    app.router.add_get("/vulnerable", vulnerable)
    app.router.add_post("/api/analyze", analyze)
    app.router.add_post("/api/test/{attack_class}", attack_test)
    app.router.add_get("/api/stats", stats)
    app.router.add_get("/api/health", health)
    return app


def run_server(config: Optional[ServerConfig] = None) -> None:
    """阻塞运行演示目标服务器"""
    config = (config or ServerConfig()).validate()
    app = create_app(config)
    logger.info(f"演示目标服务器启动: http://{config.host}:{config.port}")
    web.run_app(app, host=config.host, port=config.port, print=None)


__all__ = [
    "AnalysisCounters",
    "create_app",
    "run_server",
]
