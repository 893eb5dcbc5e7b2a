"""
载荷分析器

- LocalAnalyzer: 在进程内调用模式分类器
- RemoteAnalyzer: 调用分析端点 POST /api/analyze

分析端点约定:
    请求: {"payload": str, "attackClassHint": str}
    响应: {"success": bool, "isMalicious": bool, "matchedRule": str|null,
           "receivedPayload": str, "timestamp": str, "error": str}

success 为 false 时抛出 AnalysisError，原样携带失败原因。
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import aiohttp
import requests

from core.detectors import AttackClass, ClassificationResult, PatternClassifier
from core.detectors import find_rule, get_classifier
from core.exceptions import STAGE_ANALYSIS, AnalysisError, normalize_transport_error

from .base import SessionHolder
from .config import ANALYSIS_REMOTE, ProbeConfig

logger = logging.getLogger(__name__)

# 分析端点返回了恶意结论却没有给出规则名时使用
UNSPECIFIED_RULE = "unspecified"

# success 或 isMalicious 不是 JSON 布尔值
MALFORMED_REPLY = "malformed analysis reply"


class BaseAnalyzer(ABC):
    """分析器基类"""

    name: str = "base"

    @abstractmethod
    async def analyze(self, payload: str, attack_class: AttackClass) -> ClassificationResult:
        """异步分析载荷"""

    @abstractmethod
    def analyze_sync(self, payload: str, attack_class: AttackClass) -> ClassificationResult:
        """同步分析载荷"""

    async def close(self) -> None:
        """释放资源"""

    def close_sync(self) -> None:
        """释放同步资源"""


class LocalAnalyzer(BaseAnalyzer):
    """进程内分析器，分类过程不会挂起"""

    name = "local"

    def __init__(self, classifier: Optional[PatternClassifier] = None):
        self.classifier = classifier or get_classifier()

    async def analyze(self, payload: str, attack_class: AttackClass) -> ClassificationResult:
        return self.classifier.classify(payload, attack_class)

    def analyze_sync(self, payload: str, attack_class: AttackClass) -> ClassificationResult:
        return self.classifier.classify(payload, attack_class)


class RemoteAnalyzer(SessionHolder, BaseAnalyzer):
    """远程分析器

    使用示例:
        analyzer = RemoteAnalyzer(ProbeConfig(base_url="http://127.0.0.1:8080"))
        result = analyzer.analyze_sync("' OR '1'='1", AttackClass.SQL_INJECTION)
    """

    name = "remote"

    def __init__(
        self,
        config: Optional[ProbeConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        sync_session: Optional[requests.Session] = None,
    ):
        self.config = config or ProbeConfig()
        super().__init__(self.config.http, session=session, sync_session=sync_session)

    @property
    def url(self) -> str:
        return self.config.analysis_url

    @staticmethod
    def build_request(payload: str, attack_class: AttackClass) -> Dict[str, str]:
        return {"payload": payload, "attackClassHint": attack_class.value}

    async def analyze(self, payload: str, attack_class: AttackClass) -> ClassificationResult:
        try:
            session = await self._get_session()
            async with session.post(
                self.url,
                json=self.build_request(payload, attack_class),
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                proxy=self.config.http.proxy.for_url(self.url),
            ) as resp:
                status = resp.status
                try:
                    data = await resp.json(content_type=None)
                except ValueError:
                    data = None
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise self._transport_error(e, attack_class)

        return self.parse_response(data, attack_class, status)

    def analyze_sync(self, payload: str, attack_class: AttackClass) -> ClassificationResult:
        timeout = self.config.timeout
        try:
            resp = self._get_sync_session().post(
                self.url,
                json=self.build_request(payload, attack_class),
                timeout=(min(self.config.http.connect_timeout, timeout), timeout),
                proxies=self.config.http.proxy.to_requests(self.url),
            )
        except requests.exceptions.RequestException as e:
            raise self._transport_error(e, attack_class)

        try:
            data = resp.json()
        except ValueError:
            data = None
        finally:
            resp.close()

        return self.parse_response(data, attack_class, resp.status_code)

    def _transport_error(self, exc: BaseException, attack_class: AttackClass) -> AnalysisError:
        error = normalize_transport_error(
            exc, url=self.url, stage=STAGE_ANALYSIS, timeout=self.config.timeout
        )
        logger.warning(f"分析端点不可用: {type(error).__name__}: {error.message}")
        return AnalysisError(
            f"分析端点不可用: {error.message}",
            attack_class=attack_class.value,
            cause=error,
        )

    @staticmethod
    def parse_response(
        data: Any, attack_class: AttackClass, status: int = 200
    ) -> ClassificationResult:
        """
        解析分析端点响应

        Raises:
            AnalysisError: success 为 false、HTTP 错误、响应无法解析，
                或 success / isMalicious 不是布尔值
        """
        if not isinstance(data, dict):
            raise AnalysisError(
                f"分析端点返回了无法解析的响应 (HTTP {status})",
                attack_class=attack_class.value,
                details={"status_code": status},
            )

        success = data.get("success")
        if success is False or status >= 400:
            reason = data.get("error")
            if not isinstance(reason, str) or not reason:
                reason = f"分析失败 (HTTP {status})"
            raise AnalysisError(reason, attack_class=attack_class.value, reason=reason)

        is_malicious = data.get("isMalicious")
        if not isinstance(success, bool) or not isinstance(is_malicious, bool):
            logger.warning(
                f"分析端点响应字段类型错误: success={success!r}, isMalicious={is_malicious!r}"
            )
            raise AnalysisError(
                MALFORMED_REPLY,
                attack_class=attack_class.value,
                details={"status_code": status},
            )

        if not is_malicious:
            return ClassificationResult.benign(attack_class)

        matched_rule = data.get("matchedRule") or UNSPECIFIED_RULE
        rule = find_rule(matched_rule)
        confidence = data.get("confidence")
        if not isinstance(confidence, int) or isinstance(confidence, bool):
            confidence = rule.confidence if rule else 0
        confidence = max(0, min(100, confidence))

        return ClassificationResult(
            is_malicious=True,
            attack_class=attack_class,
            matched_rule=str(matched_rule),
            confidence=confidence,
            matched_pattern=rule.pattern.pattern if rule else data.get("matchedPattern"),
        )


def create_analyzer(config: ProbeConfig) -> BaseAnalyzer:
    """按配置创建分析器"""
    if config.analysis == ANALYSIS_REMOTE:
        return RemoteAnalyzer(config)
    return LocalAnalyzer()


__all__ = [
    "BaseAnalyzer",
    "LocalAnalyzer",
    "RemoteAnalyzer",
    "create_analyzer",
]
