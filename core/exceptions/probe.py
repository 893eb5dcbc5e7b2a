"""
WAF-Probe-Harness 测试流程异常

输入校验、载荷分析和判定计算相关的错误类型定义。
"""

from __future__ import annotations

from typing import Any, Optional

from .base import WAFProbeError

# ============================================================================
# 输入错误
# ============================================================================


class InputError(WAFProbeError):
    """
    输入错误

    提交了空载荷、纯空白载荷或未知的攻击类型。
    属于用户可修正的错误，在到达分类器和探测器之前被拒绝，不作为系统故障记录。

    属性:
        field: 出错的字段名
    """

    code = "INPUT_REJECTED"

    def __init__(self, message: str, field: Optional[str] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.field = field
        if field:
            self.details["field"] = field


# ============================================================================
# 分析错误
# ============================================================================


class AnalysisError(WAFProbeError):
    """
    分析错误

    分析端点返回 success: false、无法解析的响应或无法访问。
    reason 原样保存分析端点给出的失败原因；本次测试视为未完成，不计算判定。

    示例:
        >>> raise AnalysisError("Payload is required", attack_class="xss")
    """

    code = "ANALYSIS_FAILED"

    def __init__(
        self,
        message: str,
        attack_class: Optional[str] = None,
        reason: Optional[str] = None,
        **kwargs: Any,
    ):
        """
        初始化分析错误

        参数:
            message: 错误消息
            attack_class: 攻击类型
            reason: 分析端点返回的原始失败原因
            **kwargs: 传递给父类的其他参数
        """
        super().__init__(message, **kwargs)
        self.attack_class = attack_class
        self.reason = reason if reason is not None else message
        if attack_class:
            self.details["attack_class"] = attack_class


# ============================================================================
# 引擎内部错误
# ============================================================================


class EngineError(WAFProbeError):
    """
    引擎内部错误

    分类或判定计算过程中出现的未预期异常，属于程序缺陷。
    原始异常通过 cause 保留，载荷预览和攻击类型写入 details。
    """

    code = "ENGINE_INTERNAL"

    def __init__(
        self,
        message: str = "内部错误，请重试",
        payload_preview: Optional[str] = None,
        attack_class: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        if payload_preview is not None:
            self.details["payload"] = payload_preview
        if attack_class:
            self.details["attack_class"] = attack_class


__all__ = [
    "InputError",
    "AnalysisError",
    "EngineError",
]
