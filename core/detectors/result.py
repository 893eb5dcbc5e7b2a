"""
分类结果数据类

定义攻击类型枚举与载荷分类结果的数据结构
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from core.exceptions import InputError


class AttackClass(Enum):
    """攻击类型枚举

    值与演示服务器路由和请求体中使用的标识一致
    """

    XSS = "xss"  # 跨站脚本
    SQL_INJECTION = "sqli"  # SQL 注入
    COMMAND_EXECUTION = "rce"  # 命令执行

    @property
    def display_name(self) -> str:
        """获取展示名称"""
        names = {
            "xss": "XSS",
            "sqli": "SQL Injection",
            "rce": "Remote Code Execution",
        }
        return names[self.value]

    @property
    def context_label(self) -> str:
        """获取端点上下文标签 (XSS 的注入上下文、SQLi 的注入方式、RCE 的执行方式)"""
        labels = {
            "xss": "html",
            "sqli": "union",
            "rce": "command",
        }
        return labels[self.value]

    @classmethod
    def parse(cls, value: Any) -> "AttackClass":
        """从字符串解析攻击类型

        接受枚举值 (xss/sqli/rce)、成员名 (SQL_INJECTION) 以及常见别名，大小写不敏感

        Raises:
            InputError: 无法识别的攻击类型
        """
        if isinstance(value, cls):
            return value

        key = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member

        aliases = {
            "sql": cls.SQL_INJECTION,
            "sqlinjection": cls.SQL_INJECTION,
            "cmd": cls.COMMAND_EXECUTION,
            "command": cls.COMMAND_EXECUTION,
            "cmd_injection": cls.COMMAND_EXECUTION,
            "remote_code_execution": cls.COMMAND_EXECUTION,
            "cross_site_scripting": cls.XSS,
        }
        if key in aliases:
            return aliases[key]

        raise InputError(f"未知的攻击类型: {value!r}", field="attack_class")


@dataclass(frozen=True)
class ClassificationResult:
    """载荷分类结果

    is_malicious 为 True 时 matched_rule 必定非空；
    confidence 为命中规则的固定分值，良性结果为 0
    """

    is_malicious: bool  # 是否为恶意载荷
    attack_class: AttackClass  # 使用的规则集
    matched_rule: Optional[str] = None  # 命中的规则名
    confidence: int = 0  # 置信度 (0 - 100)
    matched_pattern: Optional[str] = None  # 命中规则的正则
    evidence: Optional[str] = None  # 载荷中被命中的片段

    @classmethod
    def benign(cls, attack_class: AttackClass) -> "ClassificationResult":
        """创建良性结果"""
        return cls(is_malicious=False, attack_class=attack_class)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "is_malicious": self.is_malicious,
            "attack_class": self.attack_class.value,
            "matched_rule": self.matched_rule,
            "confidence": self.confidence,
            "matched_pattern": self.matched_pattern,
            "evidence": self.evidence,
        }

    def __str__(self) -> str:
        if self.is_malicious:
            return (
                f"[{self.attack_class.display_name}] MALICIOUS - "
                f"{self.matched_rule} ({self.confidence}%)"
            )
        return f"[{self.attack_class.display_name}] BENIGN"
