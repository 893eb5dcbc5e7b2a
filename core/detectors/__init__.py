"""
载荷分类模块

按攻击类型 (XSS、SQL 注入、命令执行) 对提交的载荷做模式匹配分类:
- 规则库: 静态、有序、大小写不敏感的正则规则
- 分类器: 第一条命中的规则决定结果，置信度为规则固定分值
- 示例载荷: 恶意样例与良性对照

使用示例:

    from core.detectors import AttackClass, classify

    result = classify("' OR '1'='1", AttackClass.SQL_INJECTION)
    print(result.is_malicious)   # True
    print(result.matched_rule)   # sqli_boolean_tautology
    print(result.confidence)     # 90

    # 自定义规则集
    from core.detectors import PatternClassifier, XSS_RULES
    classifier = PatternClassifier({AttackClass.XSS: XSS_RULES[:2]})
"""

from .classifier import PatternClassifier, classify, get_classifier
from .payloads import BENIGN_EXAMPLES, ExamplePayload, get_examples
from .result import AttackClass, ClassificationResult
from .rules import (
    RCE_RULES,
    RULE_SETS,
    SQLI_RULES,
    XSS_RULES,
    DetectionRule,
    find_rule,
    get_rules,
)

__all__ = [
    # 数据类型
    "AttackClass",
    "ClassificationResult",
    "DetectionRule",
    "ExamplePayload",
    # 规则
    "XSS_RULES",
    "SQLI_RULES",
    "RCE_RULES",
    "RULE_SETS",
    "get_rules",
    "find_rule",
    # 分类器
    "PatternClassifier",
    "get_classifier",
    "classify",
    # 示例
    "BENIGN_EXAMPLES",
    "get_examples",
]
