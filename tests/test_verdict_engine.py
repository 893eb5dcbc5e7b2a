"""
core.verdict.engine 单元测试

测试判定表、无法确认结果的处理和判定说明
"""

import pytest

from core.detectors import AttackClass
from core.probe import ProbeStatus
from core.verdict import Severity, Verdict, VerdictEngine, evaluate, explain

pytestmark = pytest.mark.unit


class TestVerdictTable:
    """测试判定表"""

    @pytest.mark.parametrize(
        "malicious,status,expected",
        [
            (True, 403, Verdict.PASS),
            (True, 200, Verdict.FAIL),
            (False, 200, Verdict.PASS),
            (False, 403, Verdict.FALSE_POSITIVE),
        ],
    )
    def test_table(self, classification, probe_outcome, malicious, status, expected):
        """测试四种组合"""
        assert evaluate(classification(malicious), probe_outcome(status)) is expected

    @pytest.mark.parametrize("status", [301, 404, 429, 500, 502, None])
    def test_inconclusive_counts_as_blocked(self, classification, probe_outcome, status):
        """测试无法确认的探测默认按已拦截处理"""
        outcome = probe_outcome(status)
        assert outcome.status is ProbeStatus.INCONCLUSIVE
        assert outcome.blocked is True
        assert evaluate(classification(True), outcome) is Verdict.PASS
        assert evaluate(classification(False), outcome) is Verdict.FALSE_POSITIVE

    def test_unknown_never_from_known_inputs(self, classification, probe_outcome):
        """测试默认模式下完整输入不会产生 UNKNOWN"""
        engine = VerdictEngine()
        for malicious in (True, False):
            for status in (200, 403, 500, None):
                verdict = engine.evaluate(classification(malicious), probe_outcome(status))
                assert verdict is not Verdict.UNKNOWN


class TestStrictMode:
    """测试 inconclusive_as_unknown 模式"""

    @pytest.mark.parametrize("status", [404, 500, None])
    def test_inconclusive_is_unknown(self, classification, probe_outcome, status):
        """测试无法确认的探测判定为 UNKNOWN"""
        engine = VerdictEngine(inconclusive_as_unknown=True)
        assert engine.evaluate(classification(True), probe_outcome(status)) is Verdict.UNKNOWN
        assert engine.evaluate(classification(False), probe_outcome(status)) is Verdict.UNKNOWN

    def test_known_outcomes_unchanged(self, classification, probe_outcome):
        """测试 403 / 200 的判定不受影响"""
        engine = VerdictEngine(inconclusive_as_unknown=True)
        assert engine.evaluate(classification(True), probe_outcome(403)) is Verdict.PASS
        assert engine.evaluate(classification(True), probe_outcome(200)) is Verdict.FAIL
        assert engine.evaluate(classification(False), probe_outcome(403)) is Verdict.FALSE_POSITIVE


class TestExplain:
    """测试判定说明"""

    def test_attack_blocked(self, classification, probe_outcome):
        """测试攻击被拦截"""
        result = classification(True)
        explanation = explain(Verdict.PASS, result, probe_outcome(403))
        assert explanation.severity is Severity.GOOD
        assert "BLOCKED" in explanation.reason
        assert "xss_script_tag" in explanation.reason

    def test_attack_not_delivered(self, classification, probe_outcome):
        """测试非 403 的已拦截结果标明状态"""
        explanation = explain(Verdict.PASS, classification(True), probe_outcome(None))
        assert explanation.severity is Severity.GOOD
        assert "ERROR" in explanation.reason

    def test_attack_allowed(self, classification, probe_outcome):
        """测试攻击被放行"""
        result = classification(True, AttackClass.SQL_INJECTION)
        explanation = explain(Verdict.FAIL, result, probe_outcome(200))
        assert explanation.severity is Severity.BAD
        assert "tighten" in explanation.remediation
        assert "SQL Injection" in explanation.remediation

    def test_benign_allowed(self, classification, probe_outcome):
        """测试良性请求被放行"""
        explanation = explain(Verdict.PASS, classification(False), probe_outcome(200))
        assert explanation.severity is Severity.GOOD
        assert "Benign" in explanation.reason

    def test_false_positive(self, classification, probe_outcome):
        """测试误报"""
        explanation = explain(Verdict.FALSE_POSITIVE, classification(False), probe_outcome(403))
        assert explanation.severity is Severity.WARNING
        assert "false positive" in explanation.remediation

    def test_unknown(self, classification, probe_outcome):
        """测试无法确认"""
        engine = VerdictEngine(inconclusive_as_unknown=True)
        outcome = probe_outcome(None)
        explanation = engine.explain(Verdict.UNKNOWN, classification(True), outcome)
        assert explanation.severity is Severity.NEUTRAL
        assert "timed out" in explanation.reason

    def test_str_and_dict(self, classification, probe_outcome):
        """测试文本和字典格式"""
        explanation = explain(Verdict.FAIL, classification(True), probe_outcome(200))
        text = str(explanation)
        assert explanation.reason in text
        assert explanation.remediation in text
        assert explanation.to_dict()["severity"] == "bad"
