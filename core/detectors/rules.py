"""
检测规则库

按攻击类型组织的静态检测规则。规则在模块导入时编译一次，之后不再修改。
规则集仅用于演示，并不追求完备。

每条规则带有固定置信度，分值大致反映模式的特异性:
UNION SELECT、$(...) 这类几乎只在攻击中出现的模式分值高，
SQL 注释符 "--" 这类容易误报的模式分值低。
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Tuple

from .result import AttackClass

# 常见侦察命令，用于命令拼接检测
RECON_BINARIES = r"(?:ls|dir|cat|type|whoami|id|pwd|uname)\b"


@dataclass(frozen=True)
class DetectionRule:
    """检测规则

    Attributes:
        name: 规则名称 (全局唯一)
        attack_class: 所属攻击类型
        pattern: 编译后的正则 (大小写不敏感)
        confidence: 命中时的固定置信度 (70 - 99)
        description: 规则说明
    """

    name: str
    attack_class: AttackClass
    pattern: Pattern[str]
    confidence: int
    description: str = ""

    def search(self, payload: str) -> Optional["re.Match[str]"]:
        """在载荷任意位置搜索匹配"""
        return self.pattern.search(payload)


def _build(
    attack_class: AttackClass, definitions: List[Tuple[str, str, int, str]], flags: int = 0
) -> Tuple[DetectionRule, ...]:
    """编译规则定义表"""
    return tuple(
        DetectionRule(
            name=name,
            attack_class=attack_class,
            pattern=re.compile(regex, re.IGNORECASE | flags),
            confidence=confidence,
            description=description,
        )
        for name, regex, confidence, description in definitions
    )


# ==================== XSS 规则 ====================

XSS_RULES = _build(
    AttackClass.XSS,
    [
        ("xss_script_tag", r"<script[^>]*>.*?</script>", 97, "完整的 script 标签"),
        ("xss_javascript_uri", r"javascript:", 92, "javascript: 伪协议"),
        ("xss_event_handler", r"\bon\w+\s*=", 85, "内联事件处理属性 (onerror=、onload= 等)"),
        ("xss_iframe_tag", r"<iframe[^>]*>", 88, "iframe 标签"),
        ("xss_object_tag", r"<object[^>]*>", 86, "object 标签"),
        ("xss_embed_tag", r"<embed[^>]*>", 86, "embed 标签"),
        ("xss_vbscript_uri", r"vbscript:", 90, "vbscript: 伪协议"),
        ("xss_css_expression", r"expression\s*\(", 80, "CSS expression()"),
    ],
    flags=re.DOTALL,
)

# ==================== SQL 注入规则 ====================

SQLI_RULES = _build(
    AttackClass.SQL_INJECTION,
    [
        (
            "sqli_boolean_tautology",
            r"(\bor\b|\band\b)\s+['\"]?\d+['\"]?\s*=\s*['\"]?\d+['\"]?",
            90,
            "布尔恒真式 (OR 1=1、' OR '1'='1)",
        ),
        ("sqli_union_select", r"union\s+select", 97, "UNION SELECT 联合查询"),
        ("sqli_drop_table", r"drop\s+table", 98, "DROP TABLE"),
        ("sqli_insert_into", r"insert\s+into", 85, "INSERT INTO"),
        ("sqli_delete_from", r"delete\s+from", 88, "DELETE FROM"),
        ("sqli_update_set", r"update\s+\w+\s+set", 80, "UPDATE ... SET"),
        ("sqli_exec_call", r"exec\s*\(", 82, "exec( 调用"),
        ("sqli_stored_procedure", r"\bsp_\w+", 75, "sp_ 存储过程"),
        ("sqli_extended_procedure", r"\bxp_\w+", 93, "xp_ 扩展存储过程"),
        ("sqli_line_comment", r"--", 70, "行注释 --"),
        ("sqli_block_comment", r"/\*.*?\*/", 72, "块注释 /* */"),
    ],
    flags=re.DOTALL,
)

# ==================== 命令执行规则 ====================

RCE_RULES = _build(
    AttackClass.COMMAND_EXECUTION,
    [
        ("rce_semicolon_chain", r";\s*" + RECON_BINARIES, 93, "分号拼接侦察命令"),
        ("rce_command_substitution", r"\$\([^)]+\)", 95, "$(...) 命令替换"),
        ("rce_backtick_substitution", r"`[^`]+`", 90, "反引号命令替换"),
        ("rce_pipe_chain", r"\|\s*" + RECON_BINARIES, 92, "管道拼接侦察命令"),
        ("rce_and_chain", r"&&\s*" + RECON_BINARIES, 92, "&& 拼接侦察命令"),
        ("rce_eval_call", r"\beval\s*\(", 85, "eval( 调用"),
        ("rce_exec_call", r"\bexec\s*\(", 85, "exec( 调用"),
        ("rce_system_call", r"\bsystem\s*\(", 88, "system( 调用"),
        ("rce_shell_exec_call", r"shell_exec\s*\(", 94, "shell_exec( 调用"),
        ("rce_passthru_call", r"passthru\s*\(", 94, "passthru( 调用"),
    ],
)

# 攻击类型 -> 规则集 (按固定顺序匹配)
RULE_SETS: Dict[AttackClass, Tuple[DetectionRule, ...]] = {
    AttackClass.XSS: XSS_RULES,
    AttackClass.SQL_INJECTION: SQLI_RULES,
    AttackClass.COMMAND_EXECUTION: RCE_RULES,
}


def get_rules(attack_class: AttackClass) -> Tuple[DetectionRule, ...]:
    """获取指定攻击类型的规则集"""
    return RULE_SETS.get(attack_class, ())


def find_rule(name: str) -> Optional[DetectionRule]:
    """按名称查找规则"""
    for rules in RULE_SETS.values():
        for rule in rules:
            if rule.name == name:
                return rule
    return None


__all__ = [
    "DetectionRule",
    "RECON_BINARIES",
    "XSS_RULES",
    "SQLI_RULES",
    "RCE_RULES",
    "RULE_SETS",
    "get_rules",
    "find_rule",
]
