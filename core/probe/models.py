"""
探测结果数据类

只根据传输层信号 (HTTP 状态码 / 传输失败) 判断载荷是否被拦截，
从不根据响应正文的文字内容推断。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from core.exceptions import TransportError

HTTP_FORBIDDEN = 403
HTTP_OK = 200


class ProbeStatus(Enum):
    """探测状态"""

    INTERCEPTED = "intercepted"  # 403，被中间层拦截
    DELIVERED = "delivered"  # 200，载荷到达应用
    INCONCLUSIVE = "inconclusive"  # 其他状态码或传输失败，无法确认是否送达

    @classmethod
    def from_http_status(cls, http_status: Optional[int]) -> "ProbeStatus":
        """由 HTTP 状态码得到探测状态，None 表示传输失败"""
        if http_status == HTTP_FORBIDDEN:
            return cls.INTERCEPTED
        if http_status == HTTP_OK:
            return cls.DELIVERED
        return cls.INCONCLUSIVE


@dataclass(frozen=True)
class ProbeOutcome:
    """探测结果

    blocked 为 True 的条件: 状态码 403、任何非 200 状态码、任何传输失败。
    无法确认送达的请求不计为"放行"。
    """

    http_status: Optional[int]  # None 表示传输失败 (ERROR)
    status: ProbeStatus
    url: str = ""
    elapsed_ms: float = 0.0
    error: Optional[str] = None  # 传输失败原因
    error_type: Optional[str] = None  # 归一化后的异常类型名
    body: Optional[Dict[str, Any]] = None  # 200 响应的 JSON 正文，仅用于诊断

    @property
    def blocked(self) -> bool:
        return self.status is not ProbeStatus.DELIVERED

    @property
    def transport_failed(self) -> bool:
        return self.http_status is None

    @property
    def status_label(self) -> Union[int, str]:
        """HTTP 状态码，传输失败时为 "ERROR" """
        return self.http_status if self.http_status is not None else "ERROR"

    @property
    def received_payload(self) -> Optional[str]:
        """目标端点回显的载荷"""
        if self.body and isinstance(self.body.get("receivedPayload"), str):
            return self.body["receivedPayload"]
        return None

    @classmethod
    def from_response(
        cls,
        http_status: int,
        url: str = "",
        elapsed_ms: float = 0.0,
        body: Optional[Dict[str, Any]] = None,
    ) -> "ProbeOutcome":
        """由 HTTP 响应创建结果"""
        return cls(
            http_status=http_status,
            status=ProbeStatus.from_http_status(http_status),
            url=url,
            elapsed_ms=elapsed_ms,
            body=body if http_status == HTTP_OK else None,
        )

    @classmethod
    def from_transport_error(
        cls, error: TransportError, url: str = "", elapsed_ms: float = 0.0
    ) -> "ProbeOutcome":
        """由传输失败创建结果"""
        return cls(
            http_status=None,
            status=ProbeStatus.INCONCLUSIVE,
            url=url,
            elapsed_ms=elapsed_ms,
            error=error.message,
            error_type=type(error).__name__,
        )

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "http_status": self.status_label,
            "blocked": self.blocked,
            "status": self.status.value,
            "url": self.url,
            "elapsed_ms": round(self.elapsed_ms, 2),
            "error": self.error,
            "error_type": self.error_type,
            "body": self.body,
        }

    def __str__(self) -> str:
        state = "BLOCKED" if self.blocked else "ALLOWED"
        return f"HTTP {self.status_label} -> {state} ({self.status.value})"
