"""
判定引擎

将分类结果和探测结果合并为判定:

| is_malicious | blocked | 判定            |
|--------------|---------|-----------------|
| True         | True    | PASS            |
| True         | False   | FAIL            |
| False        | False   | PASS            |
| False        | True    | FALSE_POSITIVE  |

默认模式下 INCONCLUSIVE 的探测按"已拦截"处理，UNKNOWN 不会出现；
inconclusive_as_unknown=True 时，无法确认送达的探测判定为 UNKNOWN。

引擎无内部状态，可以被并发调用。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from core.detectors import ClassificationResult
from core.probe.models import ProbeOutcome, ProbeStatus


class Verdict(Enum):
    """测试判定"""

    PASS = "PASS"  # 攻击被拦截或良性请求被放行
    FAIL = "FAIL"  # 攻击被放行
    FALSE_POSITIVE = "FALSE_POSITIVE"  # 良性请求被拦截
    UNKNOWN = "UNKNOWN"  # 无法确认载荷是否送达


class Severity(Enum):
    """展示层使用的颜色标签"""

    GOOD = "good"
    BAD = "bad"
    WARNING = "warning"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class Explanation:
    """判定说明"""

    reason: str  # 判定原因
    remediation: str  # 处理建议
    severity: Severity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reason": self.reason,
            "remediation": self.remediation,
            "severity": self.severity.value,
        }

    def __str__(self) -> str:
        return f"{self.reason} - {self.remediation}"


class VerdictEngine:
    """判定引擎

    使用示例:
        engine = VerdictEngine()
        verdict = engine.evaluate(classification, outcome)
        print(engine.explain(verdict, classification, outcome))
    """

    def __init__(self, inconclusive_as_unknown: bool = False):
        self.inconclusive_as_unknown = inconclusive_as_unknown

    def evaluate(self, classification: ClassificationResult, probe: ProbeOutcome) -> Verdict:
        """计算判定"""
        if self.inconclusive_as_unknown and probe.status is ProbeStatus.INCONCLUSIVE:
            return Verdict.UNKNOWN

        if classification.is_malicious:
            return Verdict.PASS if probe.blocked else Verdict.FAIL
        return Verdict.FALSE_POSITIVE if probe.blocked else Verdict.PASS

    def explain(
        self,
        verdict: Verdict,
        classification: ClassificationResult,
        probe: ProbeOutcome,
    ) -> Explanation:
        """生成面向操作者的判定说明和处理建议"""
        display_name = classification.attack_class.display_name

        if verdict is Verdict.UNKNOWN:
            reason = f"Delivery could not be confirmed (HTTP {probe.status_label})"
            if probe.error:
                reason = f"{reason}: {probe.error}"
            return Explanation(
                reason=reason,
                remediation="check that the target endpoint is reachable, then re-run the test",
                severity=Severity.NEUTRAL,
            )

        if verdict is Verdict.FAIL:
            return Explanation(
                reason=f"Malicious payload ALLOWED through "
                f"(matched {classification.matched_rule}, HTTP {probe.status_label})",
                remediation=f"attack allowed - tighten WAF rules for {display_name}",
                severity=Severity.BAD,
            )

        if verdict is Verdict.FALSE_POSITIVE:
            return Explanation(
                reason=f"Benign payload was blocked (HTTP {probe.status_label}), "
                f"potential false positive",
                remediation="benign blocked - review WAF rules for false positives",
                severity=Severity.WARNING,
            )

        if classification.is_malicious:
            if probe.status is ProbeStatus.INTERCEPTED:
                reason = (
                    f"Malicious payload was BLOCKED by the WAF "
                    f"(matched {classification.matched_rule})"
                )
            else:
                # 非 403 的失败同样按已拦截处理，但需要标明来源
                reason = (
                    f"Malicious payload did not reach the application "
                    f"(HTTP {probe.status_label}, treated as blocked)"
                )
            return Explanation(
                reason=reason,
                remediation="no action needed",
                severity=Severity.GOOD,
            )

        return Explanation(
            reason="Benign payload passed through unmodified",
            remediation="no action needed",
            severity=Severity.GOOD,
        )


_default_engine = VerdictEngine()


def evaluate(classification: ClassificationResult, probe: ProbeOutcome) -> Verdict:
    """使用默认引擎计算判定（便捷函数）"""
    return _default_engine.evaluate(classification, probe)


def explain(
    verdict: Verdict, classification: ClassificationResult, probe: ProbeOutcome
) -> Explanation:
    """使用默认引擎生成判定说明（便捷函数）"""
    return _default_engine.explain(verdict, classification, probe)


__all__ = [
    "Verdict",
    "Severity",
    "Explanation",
    "VerdictEngine",
    "evaluate",
    "explain",
]
