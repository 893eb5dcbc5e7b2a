"""
探测配置

描述探测目标 (易受攻击端点)、分析端点和判定模式，支持从环境变量和字典加载
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict

from core.exceptions import ConfigError
from core.http import HTTPConfig
from utils.validators import validate_timeout, validate_url

logger = logging.getLogger(__name__)

ANALYSIS_LOCAL = "local"
ANALYSIS_REMOTE = "remote"
ANALYSIS_MODES = (ANALYSIS_LOCAL, ANALYSIS_REMOTE)


@dataclass
class ProbeConfig:
    """探测配置"""

    # 探测目标
    base_url: str = "http://127.0.0.1:8080"
    probe_path: str = "/vulnerable"  # 易受攻击端点
    param_name: str = "q"  # 承载载荷的查询参数
    timeout: float = 10.0  # 单次探测超时 (秒)

    # 缓存破坏参数，防止中间层缓存命中
    cache_bust: bool = True
    cache_bust_param: str = "_"

    # 分析方式: local 进程内分类 / remote 调用分析端点
    analysis: str = ANALYSIS_LOCAL
    analysis_path: str = "/api/analyze"

    # 为 True 时，无法确认的探测结果判定为 UNKNOWN 而不是按"已拦截"处理
    inconclusive_as_unknown: bool = False

    http: HTTPConfig = field(default_factory=HTTPConfig)

    @property
    def probe_url(self) -> str:
        """易受攻击端点的完整 URL"""
        return self._join(self.probe_path)

    @property
    def analysis_url(self) -> str:
        """分析端点的完整 URL"""
        return self._join(self.analysis_path)

    def _join(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def validate(self) -> "ProbeConfig":
        """
        校验配置

        Raises:
            ConfigError: 配置无效
        """
        if not validate_url(self.base_url):
            raise ConfigError("无效的探测目标地址", details={"base_url": self.base_url})
        if not self.param_name:
            raise ConfigError("查询参数名不能为空", details={"param_name": self.param_name})
        if self.cache_bust and self.cache_bust_param == self.param_name:
            raise ConfigError(
                "缓存破坏参数不能与载荷参数同名",
                details={"param_name": self.param_name},
            )
        if self.analysis not in ANALYSIS_MODES:
            raise ConfigError(
                f"未知的分析方式: {self.analysis}", details={"allowed": list(ANALYSIS_MODES)}
            )
        validate_timeout(self.timeout)
        return self

    @classmethod
    def from_env(cls) -> "ProbeConfig":
        """
        从环境变量加载配置

        支持的环境变量:
        - WAF_PROBE_TARGET: 探测目标根地址
        - WAF_PROBE_PATH: 易受攻击端点路径
        - WAF_PROBE_PARAM: 载荷查询参数名
        - WAF_PROBE_TIMEOUT: 探测超时 (秒)
        - WAF_PROBE_ANALYSIS: local / remote
        - WAF_PROBE_STRICT: true 时无法确认的结果判定为 UNKNOWN
        - 以及 HTTPConfig.from_env() 支持的 HTTP_* 变量
        """
        config = cls(http=HTTPConfig.from_env())

        if target := os.environ.get("WAF_PROBE_TARGET"):
            config.base_url = target
        if path := os.environ.get("WAF_PROBE_PATH"):
            config.probe_path = path
        if param := os.environ.get("WAF_PROBE_PARAM"):
            config.param_name = param
        if timeout := os.environ.get("WAF_PROBE_TIMEOUT"):
            config.timeout = validate_timeout(timeout, "WAF_PROBE_TIMEOUT")
        if analysis := os.environ.get("WAF_PROBE_ANALYSIS"):
            config.analysis = analysis.lower()
        if strict := os.environ.get("WAF_PROBE_STRICT"):
            config.inconclusive_as_unknown = strict.lower() in ("true", "1", "yes")

        logger.debug(f"从环境变量加载探测配置: target={config.base_url}, analysis={config.analysis}")
        return config.validate()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProbeConfig":
        """
        从字典加载配置

        Args:
            data: 配置字典，http 子项交给 HTTPConfig.from_dict()
        """
        config = cls()

        for key in ("base_url", "probe_path", "param_name", "cache_bust_param", "analysis_path"):
            if key in data:
                setattr(config, key, str(data[key]))
        if "timeout" in data:
            config.timeout = validate_timeout(data["timeout"])
        if "cache_bust" in data:
            config.cache_bust = bool(data["cache_bust"])
        if "analysis" in data:
            config.analysis = str(data["analysis"]).lower()
        if "inconclusive_as_unknown" in data:
            config.inconclusive_as_unknown = bool(data["inconclusive_as_unknown"])
        if "http" in data:
            config.http = HTTPConfig.from_dict(data["http"])

        return config.validate()

    def to_dict(self) -> Dict[str, Any]:
        """导出为字典"""
        return {
            "base_url": self.base_url,
            "probe_path": self.probe_path,
            "param_name": self.param_name,
            "timeout": self.timeout,
            "cache_bust": self.cache_bust,
            "cache_bust_param": self.cache_bust_param,
            "analysis": self.analysis,
            "analysis_path": self.analysis_path,
            "inconclusive_as_unknown": self.inconclusive_as_unknown,
            "http": self.http.to_dict(),
        }


__all__ = [
    "ANALYSIS_LOCAL",
    "ANALYSIS_REMOTE",
    "ANALYSIS_MODES",
    "ProbeConfig",
]
