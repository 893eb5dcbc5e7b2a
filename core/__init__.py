"""
WAF-Probe-Harness Core Module
WAF 拦截效果验证引擎: 载荷分类、探测、判定与会话统计
"""

__version__ = "1.0.0"
