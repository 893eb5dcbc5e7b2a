"""
探测模块

- ProbeDispatcher: 向易受攻击端点发送载荷，只根据 HTTP 状态码判断是否被拦截
- LocalAnalyzer / RemoteAnalyzer: 进程内或通过分析端点对载荷分类
- ProbeConfig: 探测目标与判定模式配置

使用示例:
    from core.probe import ProbeConfig, ProbeDispatcher, create_analyzer

    config = ProbeConfig.from_env()
    dispatcher = ProbeDispatcher(config)
    analyzer = create_analyzer(config)
"""

from .analyzer import BaseAnalyzer, LocalAnalyzer, RemoteAnalyzer, create_analyzer
from .config import ANALYSIS_LOCAL, ANALYSIS_MODES, ANALYSIS_REMOTE, ProbeConfig
from .dispatcher import ProbeDispatcher
from .models import ProbeOutcome, ProbeStatus

__all__ = [
    # 配置
    "ProbeConfig",
    "ANALYSIS_LOCAL",
    "ANALYSIS_REMOTE",
    "ANALYSIS_MODES",
    # 探测
    "ProbeDispatcher",
    "ProbeOutcome",
    "ProbeStatus",
    # 分析
    "BaseAnalyzer",
    "LocalAnalyzer",
    "RemoteAnalyzer",
    "create_analyzer",
]
