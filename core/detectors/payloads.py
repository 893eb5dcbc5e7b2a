"""
示例 Payload

集中管理演示用的示例载荷: 每个攻击类型五条恶意样例，外加一组良性对照样例。
批量测试 (main.py batch) 用它们检验 WAF 是否只拦截恶意流量。
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .result import AttackClass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExamplePayload:
    """示例载荷定义"""

    value: str  # payload 值
    attack_class: AttackClass  # 攻击类型
    malicious: bool = True  # 是否期望被判定为恶意
    description: str = ""  # 描述

    def to_dict(self) -> Dict[str, object]:
        return {
            "value": self.value,
            "attack_class": self.attack_class.value,
            "malicious": self.malicious,
            "description": self.description,
        }


# ==================== 恶意样例 ====================

XSS_EXAMPLES = [
    ('<script>alert("XSS Test")</script>', "基础 script 标签"),
    ('<img src=x onerror=alert("XSS")>', "img onerror 事件"),
    ('javascript:alert("XSS")', "javascript 伪协议"),
    ('<svg onload=alert("XSS")>', "svg onload 事件"),
    ('"><script>alert("XSS")</script>', "闭合属性后注入 script"),
]

SQLI_EXAMPLES = [
    ("' OR '1'='1", "经典恒真式"),
    ("'; DROP TABLE users; --", "堆叠查询删表"),
    ("1' UNION SELECT * FROM users--", "UNION 联合查询"),
    ("admin'--", "注释截断登录"),
    ("1' OR 1=1#", "数字恒真式"),
]

RCE_EXAMPLES = [
    ("; ls -la", "分号拼接 ls"),
    ("$(whoami)", "命令替换"),
    ("`cat /etc/passwd`", "反引号读取 passwd"),
    ("| id", "管道拼接 id"),
    ("&& uname -a", "&& 拼接 uname"),
]

# ==================== 良性对照样例 ====================

BENIGN_EXAMPLES = [
    ("hello world", "普通文本"),
    ("search for running shoes", "普通搜索词"),
    ("John O'Brien", "含单引号的姓名"),
    ("order #1234 status", "订单查询"),
]

_MALICIOUS: Dict[AttackClass, List[tuple]] = {
    AttackClass.XSS: XSS_EXAMPLES,
    AttackClass.SQL_INJECTION: SQLI_EXAMPLES,
    AttackClass.COMMAND_EXECUTION: RCE_EXAMPLES,
}


def get_examples(
    attack_class: Optional[AttackClass] = None,
    include_benign: bool = True,
    limit: Optional[int] = None,
) -> List[ExamplePayload]:
    """获取示例载荷

    Args:
        attack_class: 攻击类型，None 表示全部类型
        include_benign: 是否附带良性对照样例
        limit: 每个攻击类型的最大恶意样例数

    Returns:
        示例载荷列表，按攻击类型分组，恶意样例在前
    """
    classes = [attack_class] if attack_class else list(AttackClass)
    examples: List[ExamplePayload] = []

    for cls in classes:
        malicious = _MALICIOUS.get(cls, [])
        if limit and limit > 0:
            malicious = malicious[:limit]
        for value, description in malicious:
            examples.append(ExamplePayload(value, cls, True, description))

        if include_benign:
            for value, description in BENIGN_EXAMPLES:
                examples.append(ExamplePayload(value, cls, False, description))

    logger.debug(f"加载示例载荷 {len(examples)} 条")
    return examples


__all__ = [
    "ExamplePayload",
    "XSS_EXAMPLES",
    "SQLI_EXAMPLES",
    "RCE_EXAMPLES",
    "BENIGN_EXAMPLES",
    "get_examples",
]
