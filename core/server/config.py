"""
演示目标服务器配置
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict

from core.exceptions import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    """演示目标服务器配置"""

    host: str = "0.0.0.0"
    port: int = 8080
    # /api/test/* 的模拟处理延迟 (秒)，0 表示不延迟
    response_delay: float = 0.0
    version: str = "1.0.0"

    def validate(self) -> "ServerConfig":
        if not 0 < self.port < 65536:
            raise ConfigError("端口必须在 1-65535 之间", details={"port": self.port})
        if self.response_delay < 0:
            raise ConfigError("响应延迟不能为负数", details={"response_delay": self.response_delay})
        return self

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        从环境变量加载配置

        支持的环境变量:
        - HOST: 监听地址
        - PORT: 监听端口
        - WAF_DEMO_RESPONSE_DELAY: 模拟处理延迟 (秒)
        """
        config = cls()
        try:
            if host := os.environ.get("HOST"):
                config.host = host
            if port := os.environ.get("PORT"):
                config.port = int(port)
            if delay := os.environ.get("WAF_DEMO_RESPONSE_DELAY"):
                config.response_delay = float(delay)
        except ValueError as e:
            raise ConfigError(f"无效的服务器环境变量: {e}", cause=e)
        return config.validate()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        config = cls()
        try:
            if "host" in data:
                config.host = str(data["host"])
            if "port" in data:
                config.port = int(data["port"])
            if "response_delay" in data:
                config.response_delay = float(data["response_delay"])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"无效的服务器配置: {e}", cause=e)
        return config.validate()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "response_delay": self.response_delay,
            "version": self.version,
        }
