"""
会话统计

每次完成的测试记录一次判定。计数器由调用方 (测试驱动方) 持有并注入，
不是全局单例；生命周期从会话开始时的 reset() 开始。

自增操作由 threading.Lock 串行化，线程和并发协程都不会丢失计数。
锁只在内存计数期间持有，从不跨越网络等待。
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .engine import Verdict

logger = logging.getLogger(__name__)


class EffectivenessPolicy(Enum):
    """blocked_count / allowed_count 的计数策略"""

    # 按探测观察到的结果计数: 所有被拦截的探测 (包括误报) 计入 blocked_count，
    # 所有被放行的探测计入 allowed_count
    OBSERVED = "observed"
    # 只统计正确结果: 恶意被拦截计入 blocked_count，良性被放行计入 allowed_count
    CORRECT_ONLY = "correct_only"


@dataclass(frozen=True)
class SessionStatistics:
    """统计快照 (不可变)"""

    total: int = 0
    passed: int = 0
    failed: int = 0
    false_positives: int = 0
    unknown: int = 0
    blocked_count: int = 0
    allowed_count: int = 0

    @property
    def pass_rate(self) -> float:
        """通过率"""
        if self.total == 0:
            return 0.0
        return self.passed / self.total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "false_positives": self.false_positives,
            "unknown": self.unknown,
            "blocked_count": self.blocked_count,
            "allowed_count": self.allowed_count,
            "pass_rate": round(self.pass_rate, 4),
        }


@dataclass
class StatisticsRecorder:
    """
    会话统计记录器

    使用示例:
        stats = StatisticsRecorder()
        stats.record(Verdict.PASS, blocked=True)
        print(stats.snapshot().to_dict())
    """

    policy: EffectivenessPolicy = EffectivenessPolicy.OBSERVED
    _counts: Dict[str, int] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self):
        self._counts = self._zero()

    @staticmethod
    def _zero() -> Dict[str, int]:
        return {name: 0 for name in SessionStatistics.__dataclass_fields__}

    def record(self, verdict: Verdict, blocked: Optional[bool] = None) -> None:
        """
        记录一次判定

        Args:
            verdict: 判定
            blocked: 探测是否被拦截，用于效果计数；None 时只更新判定计数
        """
        verdict_field = {
            Verdict.PASS: "passed",
            Verdict.FAIL: "failed",
            Verdict.FALSE_POSITIVE: "false_positives",
            Verdict.UNKNOWN: "unknown",
        }[verdict]
        effectiveness_field = self._effectiveness_field(verdict, blocked)

        with self._lock:
            self._counts["total"] += 1
            self._counts[verdict_field] += 1
            if effectiveness_field:
                self._counts[effectiveness_field] += 1

    def _effectiveness_field(self, verdict: Verdict, blocked: Optional[bool]) -> Optional[str]:
        if blocked is None or verdict is Verdict.UNKNOWN:
            return None

        if self.policy is EffectivenessPolicy.OBSERVED:
            return "blocked_count" if blocked else "allowed_count"

        if verdict is not Verdict.PASS:
            return None
        # PASS 且被拦截 = 恶意被拦截; PASS 且放行 = 良性被放行
        return "blocked_count" if blocked else "allowed_count"

    def snapshot(self) -> SessionStatistics:
        """获取统计快照"""
        with self._lock:
            return SessionStatistics(**self._counts)

    def reset(self) -> None:
        """清零所有计数 (会话开始时调用)"""
        with self._lock:
            self._counts = self._zero()
        logger.debug("会话统计已重置")


__all__ = [
    "EffectivenessPolicy",
    "SessionStatistics",
    "StatisticsRecorder",
]
