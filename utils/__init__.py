#!/usr/bin/env python3
"""
WAF-Probe-Harness 工具函数层

- logger: 日志系统
- validators: 输入验证
"""

from utils.logger import (
    ColoredFormatter,
    PayloadSafeFileHandler,
    configure_root_logger,
    preview_payload,
)
from utils.validators import (
    validate_payload,
    validate_timeout,
    validate_url,
)

__all__ = [
    # Logger
    "ColoredFormatter",
    "PayloadSafeFileHandler",
    "configure_root_logger",
    "preview_payload",
    # Validators
    "validate_payload",
    "validate_timeout",
    "validate_url",
]
