#!/usr/bin/env python3
"""
统一日志系统 - WAF-Probe-Harness

提供彩色日志输出、文件日志记录、日志轮转等功能。
被记录的载荷本身就是攻击字符串，写入前会转义控制字符并截断，
避免日志注入和超长行。

使用示例:
    from utils.logger import configure_root_logger, preview_payload

    configure_root_logger(level=logging.WARNING, log_file="logs/waf_probe.log")
    logger = logging.getLogger(__name__)
    logger.info(f"开始测试: {preview_payload(payload)}")
"""

import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

CONSOLE_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 载荷预览最大长度
PAYLOAD_PREVIEW_LENGTH = 80

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def preview_payload(payload: Optional[str], limit: int = PAYLOAD_PREVIEW_LENGTH) -> str:
    """
    生成适合写入日志的载荷预览

    换行、回车、制表符和其他控制字符被转义，超长部分截断并标注原始长度。

    Args:
        payload: 原始载荷
        limit: 预览最大长度

    Returns:
        带引号的预览字符串
    """
    if payload is None:
        return "None"

    text = payload.replace("\\", "\\\\").replace("\n", "\\n").replace("\r", "\\r")
    text = text.replace("\t", "\\t")
    text = _CONTROL_CHARS.sub(lambda m: f"\\x{ord(m.group(0)):02x}", text)

    if len(text) > limit:
        return f"'{text[:limit]}...'(len={len(payload)})"
    return f"'{text}'"


class ColoredFormatter(logging.Formatter):
    """
    彩色日志格式化器

    根据日志级别为日志消息添加ANSI颜色代码。
    自动检测终端是否支持颜色输出。
    """

    COLORS = {
        "DEBUG": "\033[36m",  # 青色
        "INFO": "\033[32m",  # 绿色
        "WARNING": "\033[33m",  # 黄色
        "ERROR": "\033[31m",  # 红色
        "CRITICAL": "\033[35m",  # 紫色
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"
    NAME_COLOR = "\033[94m"  # 蓝色

    def __init__(
        self, fmt: Optional[str] = None, datefmt: Optional[str] = None, colored: bool = True
    ):
        super().__init__(fmt, datefmt)
        self.colored = colored and self._supports_color()

    @staticmethod
    def _supports_color() -> bool:
        """检测终端是否支持颜色"""
        if os.environ.get("NO_COLOR"):
            return False
        if not hasattr(sys.stdout, "isatty") or not sys.stdout.isatty():
            return False
        if sys.platform == "win32":
            return bool(os.environ.get("WT_SESSION") or os.environ.get("ANSICON"))
        return True

    def format(self, record: logging.LogRecord) -> str:
        """格式化日志记录"""
        if not self.colored:
            return super().format(record)

        level_color = self.COLORS.get(record.levelname, "")

        original_levelname = record.levelname
        original_name = record.name

        record.levelname = f"{level_color}{self.BOLD}{record.levelname:8}{self.RESET}"
        record.name = f"{self.NAME_COLOR}{record.name}{self.RESET}"

        try:
            return super().format(record)
        finally:
            # 恢复原始值（避免影响其他handler）
            record.levelname = original_levelname
            record.name = original_name


class PayloadSafeFileHandler(RotatingFileHandler):
    """
    载荷安全的文件日志处理器

    继承RotatingFileHandler，添加：
    - 自动创建日志目录
    - UTF-8编码支持
    - 每条记录最终文本中的控制字符转义（保证一条记录只占一行）
    """

    def __init__(
        self,
        filename: Union[str, Path],
        maxBytes: int = 10 * 1024 * 1024,  # 10MB
        backupCount: int = 5,
    ):
        log_path = Path(filename)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        super().__init__(
            str(log_path), maxBytes=maxBytes, backupCount=backupCount, encoding="utf-8"
        )

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if record.exc_info or record.stack_info:
            # 堆栈本身是多行的，只转义消息之外的控制字符
            return _CONTROL_CHARS.sub("?", text)
        return _CONTROL_CHARS.sub("?", text.replace("\r", "\\r").replace("\n", "\\n"))


def configure_root_logger(
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    colored: bool = True,
    stream=sys.stderr,
    force: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    配置根日志器，确保各模块 logging.getLogger(__name__) 的输出统一

    控制台只输出 level 及以上的记录；指定 log_file 时文件记录 DEBUG 及以上的全部细节。

    Args:
        level: 控制台日志级别
        log_file: 日志文件路径，None 表示不写文件
        colored: 是否启用彩色输出
        stream: 控制台输出流
        force: 是否强制重置已有handler
        max_file_size: 单个日志文件最大大小（字节）
        backup_count: 保留的备份文件数量
    """
    root_logger = logging.getLogger()

    if root_logger.handlers and not force:
        return root_logger

    if force:
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        ColoredFormatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT, colored=colored)
    )
    root_logger.addHandler(console_handler)

    if log_file is not None:
        file_handler = PayloadSafeFileHandler(
            filename=log_file, maxBytes=max_file_size, backupCount=backup_count
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)
        root_logger.setLevel(logging.DEBUG)
    else:
        root_logger.setLevel(level)

    root_logger.debug(f"Root logger configured: file={log_file}")
    return root_logger


__all__ = [
    "ColoredFormatter",
    "PayloadSafeFileHandler",
    "preview_payload",
    "configure_root_logger",
]
