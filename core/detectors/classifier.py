"""
载荷模式分类器

按攻击类型对应的规则集逐条匹配载荷，第一条命中的规则决定结果。
纯函数，无副作用，同一输入总是得到完全相同的输出（包括置信度）。

使用示例:
    from core.detectors import classify, AttackClass

    result = classify("<script>alert(1)</script>", AttackClass.XSS)
    if result.is_malicious:
        print(result.matched_rule, result.confidence)
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

from .result import AttackClass, ClassificationResult
from .rules import RULE_SETS, DetectionRule

logger = logging.getLogger(__name__)

# 证据片段最大长度
MAX_EVIDENCE_LENGTH = 120


class PatternClassifier:
    """基于正则规则的载荷分类器

    调用方负责在分类前拒绝空载荷，分类器本身接受任意字符串。

    使用示例:
        classifier = PatternClassifier()
        result = classifier.classify("' OR '1'='1", AttackClass.SQL_INJECTION)
    """

    def __init__(self, rule_sets: Optional[Dict[AttackClass, Iterable[DetectionRule]]] = None):
        """初始化分类器

        Args:
            rule_sets: 自定义规则集，默认使用内置规则
        """
        source = rule_sets if rule_sets is not None else RULE_SETS
        self._rule_sets: Dict[AttackClass, Tuple[DetectionRule, ...]] = {
            attack_class: tuple(rules) for attack_class, rules in source.items()
        }

    def rules_for(self, attack_class: AttackClass) -> Tuple[DetectionRule, ...]:
        """获取指定攻击类型的规则"""
        return self._rule_sets.get(attack_class, ())

    def classify(self, payload: str, attack_class: AttackClass) -> ClassificationResult:
        """对载荷分类

        Args:
            payload: 原始载荷
            attack_class: 攻击类型，决定使用的规则集

        Returns:
            分类结果
        """
        for rule in self.rules_for(attack_class):
            match = rule.search(payload)
            if match:
                logger.debug(f"规则命中: {rule.name} ({attack_class.value})")
                return ClassificationResult(
                    is_malicious=True,
                    attack_class=attack_class,
                    matched_rule=rule.name,
                    confidence=rule.confidence,
                    matched_pattern=rule.pattern.pattern,
                    evidence=match.group(0)[:MAX_EVIDENCE_LENGTH],
                )

        return ClassificationResult.benign(attack_class)


_default_classifier = PatternClassifier()


def get_classifier() -> PatternClassifier:
    """获取使用内置规则的默认分类器"""
    return _default_classifier


def classify(payload: str, attack_class: AttackClass) -> ClassificationResult:
    """使用默认分类器分类（便捷函数）"""
    return _default_classifier.classify(payload, attack_class)


__all__ = [
    "PatternClassifier",
    "get_classifier",
    "classify",
]
