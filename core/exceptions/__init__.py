"""
WAF-Probe-Harness 异常体系

异常层次结构:
WAFProbeError (基类)
├── ConfigError (配置错误)
├── TransportError (请求未得到响应)
│   ├── ConnectionError
│   ├── TimeoutError
│   └── SSLError
├── InputError (输入错误 - 空载荷、未知攻击类型)
├── AnalysisError (分析端点返回失败)
└── EngineError (分类/判定过程中的内部错误)

处理策略:
    - InputError: 用户可修正，直接提示，不记录为系统故障
    - TransportError: 探测器内部映射为保守的"已拦截"结果，不中断测试
    - AnalysisError: 原样转交调用方，本次测试不产生判定
    - EngineError: 记录完整上下文后抛出，调用方展示通用重试提示
    - 任何位置都不做自动重试

使用示例:
    from core.exceptions import InputError, WAFProbeError

    try:
        report = harness.run_test_sync(payload, "xss")
    except InputError as e:
        print(e.message)
    except WAFProbeError as e:
        print(json.dumps(e.to_dict()))
"""

from .base import ConfigError, WAFProbeError
from .probe import (
    AnalysisError,
    EngineError,
    InputError,
)
from .transport import (
    STAGE_ANALYSIS,
    STAGE_PROBE,
    ConnectionError,
    SSLError,
    TimeoutError,
    TransportError,
    normalize_transport_error,
)

__all__ = [
    # 基类
    "WAFProbeError",
    # 配置错误
    "ConfigError",
    # 传输错误
    "TransportError",
    "ConnectionError",
    "TimeoutError",
    "SSLError",
    "STAGE_PROBE",
    "STAGE_ANALYSIS",
    "normalize_transport_error",
    # 测试流程错误
    "InputError",
    "AnalysisError",
    "EngineError",
]
