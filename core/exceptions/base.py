"""
异常根类

WAFProbeError 是项目中所有异常的父类。每个子类用类属性 code 声明自己的错误码，
details 中只放可以直接写进 JSON 报告的值 (载荷总是以预览形式出现)。
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class WAFProbeError(Exception):
    """
    项目异常根类

    属性:
        message: 面向用户的错误描述
        code: 机器可读的错误码，由子类覆盖
        details: 附加上下文 (目标 URL、攻击类型、载荷预览等)
        cause: 触发本异常的原始异常，同时写入 __cause__
    """

    code: str = "WAF_PROBE_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details) if details else {}
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({context})"

    def to_dict(self) -> Dict[str, Any]:
        """报告中使用的 JSON 结构"""
        data: Dict[str, Any] = {
            "code": self.code,
            "type": type(self).__name__,
            "message": self.message,
            "details": dict(self.details),
        }
        if self.cause is not None:
            data["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return data


class ConfigError(WAFProbeError):
    """探测目标、超时、分析模式或服务器端口等配置值无效"""

    code = "CONFIG_INVALID"


__all__ = [
    "WAFProbeError",
    "ConfigError",
]
