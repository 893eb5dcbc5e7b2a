"""
判定模块

- VerdictEngine: 合并分类结果与探测结果，给出 PASS / FAIL / FALSE_POSITIVE / UNKNOWN
- StatisticsRecorder: 会话级统计计数
"""

from .engine import Explanation, Severity, Verdict, VerdictEngine, evaluate, explain
from .statistics import EffectivenessPolicy, SessionStatistics, StatisticsRecorder

__all__ = [
    "Verdict",
    "Severity",
    "Explanation",
    "VerdictEngine",
    "evaluate",
    "explain",
    "EffectivenessPolicy",
    "SessionStatistics",
    "StatisticsRecorder",
]
