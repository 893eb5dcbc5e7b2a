"""
演示目标服务器

一个不做任何防护的 aiohttp 应用，部署在 WAF 之后作为探测目标。
"""

from .app import AnalysisCounters, create_app, run_server
from .config import ServerConfig

__all__ = [
    "AnalysisCounters",
    "ServerConfig",
    "create_app",
    "run_server",
]
