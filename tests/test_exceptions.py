"""
core.exceptions 模块单元测试

测试异常层次、错误码、序列化和传输异常归一化
"""

import asyncio

import aiohttp
import pytest
import requests

from core.exceptions import (
    AnalysisError,
    ConfigError,
    ConnectionError,
    EngineError,
    InputError,
    SSLError,
    TimeoutError,
    TransportError,
    WAFProbeError,
    normalize_transport_error,
)

pytestmark = pytest.mark.unit


class TestHierarchy:
    """测试异常层次"""

    @pytest.mark.parametrize(
        "exc_class",
        [ConfigError, TransportError, InputError, AnalysisError, EngineError],
    )
    def test_base(self, exc_class):
        assert issubclass(exc_class, WAFProbeError)

    @pytest.mark.parametrize("exc_class", [ConnectionError, TimeoutError, SSLError])
    def test_transport(self, exc_class):
        assert issubclass(exc_class, TransportError)

    def test_not_builtin(self):
        """测试与内置同名异常相互独立"""
        import builtins

        assert not issubclass(ConnectionError, builtins.ConnectionError)
        assert not issubclass(TimeoutError, builtins.TimeoutError)

    def test_codes_distinct(self):
        """测试每个异常类型有自己的错误码"""
        classes = [
            WAFProbeError,
            ConfigError,
            TransportError,
            ConnectionError,
            TimeoutError,
            SSLError,
            InputError,
            AnalysisError,
            EngineError,
        ]
        codes = [exc_class.code for exc_class in classes]
        assert len(set(codes)) == len(codes)


class TestWAFProbeError:
    """测试基础异常"""

    def test_plain_message(self):
        error = WAFProbeError("探测失败")
        assert error.message == "探测失败"
        assert error.code == "WAF_PROBE_ERROR"
        assert error.details == {}
        assert error.cause is None
        assert str(error) == "探测失败"

    def test_str_with_details(self):
        error = ConfigError("端口必须在 1-65535 之间", details={"port": 0})
        assert str(error) == "端口必须在 1-65535 之间 (port=0)"

    def test_details_copied(self):
        """测试传入的 details 字典不会被异常修改"""
        details = {"port": 0}
        InputError("x", field="payload", details=details)
        assert details == {"port": 0}

    def test_to_dict(self):
        cause = ValueError("bad")
        error = ConfigError("超时时间必须是数字", details={"timeout": "abc"}, cause=cause)
        assert error.to_dict() == {
            "code": "CONFIG_INVALID",
            "type": "ConfigError",
            "message": "超时时间必须是数字",
            "details": {"timeout": "abc"},
            "cause": "ValueError: bad",
        }
        assert error.__cause__ is cause
        assert error.cause is cause

    def test_input_error_field(self):
        error = InputError("请输入要测试的载荷", field="payload")
        assert error.field == "payload"
        assert error.details["field"] == "payload"

    def test_analysis_error_reason(self):
        """测试失败原因默认取消息本身"""
        error = AnalysisError("Payload is required", attack_class="xss")
        assert error.reason == "Payload is required"
        assert error.details["attack_class"] == "xss"
        assert AnalysisError("m", reason="r").reason == "r"

    def test_engine_error(self):
        error = EngineError(payload_preview="'x'", attack_class="rce", cause=RuntimeError("boom"))
        assert error.message == "内部错误，请重试"
        assert error.details == {"payload": "'x'", "attack_class": "rce"}
        assert isinstance(error.cause, RuntimeError)
        assert error.to_dict()["code"] == "ENGINE_INTERNAL"


class TestTransportError:
    """测试传输异常"""

    def test_fields(self):
        error = TimeoutError(
            "timed out", url="http://t/vulnerable", stage="probe", timeout=0.5
        )
        assert error.url == "http://t/vulnerable"
        assert error.timeout == 0.5
        assert error.details == {"stage": "probe", "url": "http://t/vulnerable", "timeout": 0.5}

    def test_default_stage(self):
        assert ConnectionError("refused").stage == "probe"


class TestNormalizeTransportError:
    """测试传输异常归一化"""

    @pytest.mark.parametrize(
        "exc,expected",
        [
            (requests.exceptions.ReadTimeout("read timed out"), TimeoutError),
            (requests.exceptions.ConnectTimeout("connect timed out"), TimeoutError),
            (requests.exceptions.ConnectionError("refused"), ConnectionError),
            (requests.exceptions.SSLError("bad cert"), SSLError),
            (requests.exceptions.RequestException("other"), TransportError),
            (aiohttp.ServerTimeoutError("slow"), TimeoutError),
            (aiohttp.ClientConnectionError("refused"), ConnectionError),
            (aiohttp.ClientPayloadError("truncated"), TransportError),
            (asyncio.TimeoutError(), TimeoutError),
            (OSError("network unreachable"), ConnectionError),
            (RuntimeError("strange"), TransportError),
        ],
    )
    def test_mapping(self, exc, expected):
        error = normalize_transport_error(
            exc, url="http://t/api/analyze", stage="analysis", timeout=1.0
        )
        assert type(error) is expected
        assert error.cause is exc
        assert error.url == "http://t/api/analyze"
        assert error.stage == "analysis"
        assert error.details["library_error"] == type(exc).__name__

    def test_empty_message_uses_type_name(self):
        error = normalize_transport_error(asyncio.TimeoutError(), timeout=2.0)
        assert error.message == "TimeoutError"
        assert error.timeout == 2.0

    def test_already_normalized(self):
        original = ConnectionError("refused")
        assert normalize_transport_error(original) is original
