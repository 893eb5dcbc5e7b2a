"""
WAF 测试驱动

一次测试的流程:
    校验输入 -> 探测 (网络) 与分析并发执行 -> 判定 -> 说明 -> 记录统计

- 空载荷/未知攻击类型: 抛出 InputError，不发送任何请求
- 探测失败: 探测器内部映射为已拦截/无法确认，测试照常完成
- 分析失败: 取消探测，抛出 AnalysisError，不计算判定、不记录统计
- 分类/判定中的意外异常: 记录完整上下文后包装为 EngineError 抛出

使用示例:
    from core.harness import WAFTestHarness
    from core.probe import LocalAnalyzer, ProbeConfig, ProbeDispatcher

    harness = WAFTestHarness(ProbeDispatcher(ProbeConfig()), LocalAnalyzer())
    report = await harness.run_test("<script>alert(1)</script>", "xss", timeout=5)
    print(report.verdict, report.explanation)
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from core.detectors import AttackClass, ClassificationResult
from core.exceptions import AnalysisError, EngineError, WAFProbeError
from core.probe import BaseAnalyzer, ProbeDispatcher, ProbeOutcome
from core.verdict import Explanation, StatisticsRecorder, Verdict, VerdictEngine
from utils.logger import preview_payload
from utils.validators import validate_payload

logger = logging.getLogger(__name__)

# 批量测试用例: (载荷, 攻击类型)
BatchCase = Tuple[str, Union[AttackClass, str]]


@dataclass
class TestReport:
    """单次测试报告"""

    __test__ = False

    payload: str
    attack_class: AttackClass
    classification: ClassificationResult
    probe: ProbeOutcome
    verdict: Verdict
    explanation: Explanation
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def payloads_match(self) -> Optional[bool]:
        """目标端点回显的载荷是否与提交的一致，没有回显时为 None"""
        received = self.probe.received_payload
        if received is None:
            return None
        return received == self.payload

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payload": self.payload,
            "attack_class": self.attack_class.value,
            "classification": self.classification.to_dict(),
            "probe": self.probe.to_dict(),
            "verdict": self.verdict.value,
            "explanation": self.explanation.to_dict(),
            "payloads_match": self.payloads_match,
            "timestamp": self.timestamp,
        }


@dataclass
class BatchResult:
    """批量测试中单个用例的结果，report 与 error 二者只有一个非空"""

    payload: str
    attack_class: str
    report: Optional[TestReport] = None
    error: Optional[WAFProbeError] = None

    @property
    def ok(self) -> bool:
        return self.report is not None

    def to_dict(self) -> Dict[str, Any]:
        if self.report is not None:
            return self.report.to_dict()
        return {
            "payload": self.payload,
            "attack_class": self.attack_class,
            "error": self.error.to_dict() if self.error else None,
        }


class WAFTestHarness:
    """WAF 测试驱动

    统计对象由调用方持有并注入；不传时为本实例新建一个。
    """

    def __init__(
        self,
        dispatcher: ProbeDispatcher,
        analyzer: BaseAnalyzer,
        engine: Optional[VerdictEngine] = None,
        statistics: Optional[StatisticsRecorder] = None,
    ):
        self.dispatcher = dispatcher
        self.analyzer = analyzer
        self.engine = engine or VerdictEngine(
            inconclusive_as_unknown=dispatcher.config.inconclusive_as_unknown
        )
        self.statistics = statistics if statistics is not None else StatisticsRecorder()

    @staticmethod
    def _validate(payload: Any, attack_class: Union[AttackClass, str]) -> Tuple[str, AttackClass]:
        return validate_payload(payload), AttackClass.parse(attack_class)

    async def run_test(
        self,
        payload: str,
        attack_class: Union[AttackClass, str],
        timeout: Optional[float] = None,
    ) -> TestReport:
        """
        执行一次测试 (异步)

        Raises:
            InputError: 空载荷或未知攻击类型
            AnalysisError: 分析端点返回失败
            EngineError: 内部错误
        """
        payload, attack_class = self._validate(payload, attack_class)
        logger.info(f"开始测试 [{attack_class.value}] {preview_payload(payload)}")

        probe_task = asyncio.create_task(self.dispatcher.probe(payload, timeout=timeout))
        try:
            classification = await self.analyzer.analyze(payload, attack_class)
        except BaseException as e:
            probe_task.cancel()
            await asyncio.gather(probe_task, return_exceptions=True)
            if isinstance(e, AnalysisError):
                logger.warning(f"分析失败，本次测试未完成 [{attack_class.value}]: {e.message}")
                raise
            if isinstance(e, Exception):
                raise self._internal_error(e, payload, attack_class) from e
            raise

        try:
            outcome = await probe_task
        except Exception as e:
            raise self._internal_error(e, payload, attack_class) from e
        return self._conclude(payload, attack_class, classification, outcome)

    def run_test_sync(
        self,
        payload: str,
        attack_class: Union[AttackClass, str],
        timeout: Optional[float] = None,
    ) -> TestReport:
        """执行一次测试 (同步)，探测与分析顺序执行"""
        payload, attack_class = self._validate(payload, attack_class)
        logger.info(f"开始测试 [{attack_class.value}] {preview_payload(payload)}")

        outcome = self.dispatcher.probe_sync(payload, timeout=timeout)
        try:
            classification = self.analyzer.analyze_sync(payload, attack_class)
        except AnalysisError:
            logger.warning(f"分析失败，本次测试未完成 [{attack_class.value}]")
            raise
        except Exception as e:
            raise self._internal_error(e, payload, attack_class) from e

        return self._conclude(payload, attack_class, classification, outcome)

    async def run_batch(
        self,
        cases: Iterable[BatchCase],
        concurrency: int = 5,
        timeout: Optional[float] = None,
    ) -> List[BatchResult]:
        """
        并发执行多个独立测试

        单个用例的 InputError / AnalysisError / EngineError 记入结果，
        不会中断其他用例。
        返回顺序与输入顺序一致。
        """
        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def _run(payload: str, attack_class: Union[AttackClass, str]) -> BatchResult:
            label = (
                attack_class.value if isinstance(attack_class, AttackClass) else str(attack_class)
            )
            async with semaphore:
                try:
                    report = await self.run_test(payload, attack_class, timeout=timeout)
                except WAFProbeError as e:
                    return BatchResult(payload=payload, attack_class=label, error=e)
            return BatchResult(payload=payload, attack_class=label, report=report)

        results = await asyncio.gather(*[_run(payload, cls) for payload, cls in cases])
        failed = sum(1 for r in results if not r.ok)
        logger.info(f"批量测试完成: {len(results)} 个用例, {failed} 个未完成")
        return list(results)

    def _conclude(
        self,
        payload: str,
        attack_class: AttackClass,
        classification: ClassificationResult,
        outcome: ProbeOutcome,
    ) -> TestReport:
        try:
            verdict = self.engine.evaluate(classification, outcome)
            explanation = self.engine.explain(verdict, classification, outcome)
        except Exception as e:
            raise self._internal_error(e, payload, attack_class) from e

        self.statistics.record(verdict, blocked=outcome.blocked)
        logger.info(
            f"测试完成 [{attack_class.value}] {verdict.value}: "
            f"malicious={classification.is_malicious}, HTTP {outcome.status_label}"
        )
        return TestReport(
            payload=payload,
            attack_class=attack_class,
            classification=classification,
            probe=outcome,
            verdict=verdict,
            explanation=explanation,
        )

    @staticmethod
    def _internal_error(exc: Exception, payload: str, attack_class: AttackClass) -> EngineError:
        if isinstance(exc, EngineError):
            return exc
        preview = preview_payload(payload)
        logger.exception(f"内部错误 [{attack_class.value}] payload={preview}: {exc}")
        return EngineError(payload_preview=preview, attack_class=attack_class.value, cause=exc)

    async def close(self) -> None:
        """关闭探测器和分析器持有的会话"""
        await self.dispatcher.close()
        await self.analyzer.close()

    def close_sync(self) -> None:
        self.dispatcher.close_sync()
        self.analyzer.close_sync()


__all__ = [
    "BatchCase",
    "TestReport",
    "BatchResult",
    "WAFTestHarness",
]
