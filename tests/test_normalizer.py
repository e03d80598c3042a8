"""Test per-tool normalization into unified findings."""

import pytest

from sdlcaudit.core.models import RawAdapterResult, Severity
from sdlcaudit.core.normalizer import build_default_normalizer, normalize_generic, FindingNormalizer


@pytest.fixture
def normalizer():
    return build_default_normalizer()


def raw(adapter_id, payload):
    return RawAdapterResult(adapter_id=adapter_id, payload=payload, exit_code=0)


class TestSemgrep:

    def test_full_result(self, normalizer):
        payload = {"results": [{
            "check_id": "python.lang.security.audit.eval",
            "start": {"line": 7},
            "extra": {
                "severity": "ERROR",
                "message": "Detected eval",
                "metadata": {"cwe": ["CWE-95: Eval Injection"], "references": ["https://example.org/eval"]},
            },
        }]}

        [finding] = normalizer.normalize("semgrep", raw("semgrep", payload))

        assert finding.tool == "Semgrep"
        assert finding.severity == Severity.HIGH
        assert finding.line == 7
        assert finding.code == "CWE-95: Eval Injection"
        assert finding.reference == "https://example.org/eval"

    def test_missing_severity_defaults_to_info(self, normalizer):
        payload = {"results": [{"check_id": "rule", "extra": {"message": "m"}}]}

        [finding] = normalizer.normalize("semgrep", raw("semgrep", payload))

        assert finding.severity == Severity.INFO
        assert finding.line is None
        assert finding.code == "rule"

    def test_clean_run(self, normalizer):
        assert normalizer.normalize("semgrep", raw("semgrep", {"results": [], "errors": []})) == []


class TestBandit:

    def test_hardcoded_password_without_severity(self, normalizer):
        payload = {"results": [{"line_number": 12, "issue_text": "hardcoded password", "test_id": "B105"}]}

        [finding] = normalizer.normalize("bandit", raw("bandit", payload))

        assert finding.severity == Severity.MEDIUM
        assert finding.line == 12
        assert finding.message == "hardcoded password"
        assert finding.code == "B105"

    def test_cwe_and_more_info(self, normalizer):
        payload = {"results": [{
            "line_number": 3,
            "issue_text": "Use of eval",
            "issue_severity": "HIGH",
            "issue_cwe": {"id": 78, "link": "https://cwe.mitre.org/data/definitions/78.html"},
            "more_info": "https://bandit.readthedocs.io/",
        }]}

        [finding] = normalizer.normalize("bandit", raw("bandit", payload))

        assert finding.severity == Severity.HIGH
        assert finding.code == "CWE-78"
        assert finding.reference == "https://bandit.readthedocs.io/"


class TestESLint:

    def test_numeric_severities(self, normalizer):
        payload = [{"filePath": "input.js", "messages": [
            {"ruleId": "no-eval", "severity": 2, "message": "eval can be harmful.", "line": 1},
            {"ruleId": "no-unused-vars", "severity": 1, "message": "x is unused", "line": 2},
            {"ruleId": None, "message": "no severity", "line": 3},
        ]}]

        findings = normalizer.normalize("eslint", raw("eslint", payload))

        assert [f.severity for f in findings] == [Severity.HIGH, Severity.WARNING, Severity.WARNING]
        assert findings[0].code == "no-eval"
        assert findings[0].tool == "ESLint"


class TestTextTools:

    def test_cppcheck(self, normalizer):
        text = (
            "input.cpp:4:5: error: Buffer is accessed out of bounds: buf [bufferAccessOutOfBounds]\n"
            "input.cpp:9:0: style: The scope of the variable 'i' can be reduced. [variableScope]\n"
            "nofile: something unrelated\n"
        )

        findings = normalizer.normalize("cppcheck", raw("cppcheck", text))

        assert len(findings) == 2
        assert findings[0].severity == Severity.HIGH
        assert findings[0].line == 4
        assert findings[0].code == "bufferAccessOutOfBounds"
        assert findings[0].message == "Buffer is accessed out of bounds: buf"
        assert findings[1].severity == Severity.LOW

    def test_cppcheck_skips_checkers_report(self, normalizer):
        text = (
            "input.c:0:0: information: Too many #ifdef configurations [toomanyconfigs]\n"
            "nofile:0:0: information: Active checkers: 106/592 [checkersReport]\n"
        )

        findings = normalizer.normalize("cppcheck", raw("cppcheck", text))

        assert len(findings) == 1
        assert findings[0].code == "toomanyconfigs"
        assert findings[0].line is None

    def test_flawfinder(self, normalizer):
        text = (
            "input.c:6:3:  [4] (buffer) strcpy:Does not check for buffer overflows when copying "
            "to destination [MS-banned] (CWE-120).\n"
            "input.c:2:1:  [1] (buffer) char:Statically-sized arrays can be improperly restricted.\n"
        )

        findings = normalizer.normalize("flawfinder", raw("flawfinder", text))

        assert [f.severity for f in findings] == [Severity.HIGH, Severity.INFO]
        assert findings[0].line == 6
        assert findings[0].code == "CWE-120"
        assert findings[1].code == "buffer"


class TestPMD:

    def test_priorities(self, normalizer):
        payload = {"files": [{"filename": "input.java", "violations": [
            {"beginline": 3, "description": "Avoid empty catch blocks", "rule": "EmptyCatchBlock",
             "priority": 3, "externalInfoUrl": "https://pmd.github.io/"},
            {"beginline": 8, "description": "Hardcoded crypto key", "rule": "HardCodedCryptoKey", "priority": 1},
        ]}]}

        findings = normalizer.normalize("pmd", raw("pmd", payload))

        assert [f.severity for f in findings] == [Severity.MEDIUM, Severity.CRITICAL]
        assert findings[0].reference == "https://pmd.github.io/"


class TestFallbacks:

    @pytest.mark.parametrize("adapter_id,payload", [
        ("semgrep", {"results": [{"extra": {"severity": "weird"}}]}),
        ("bandit", {"results": [{"issue_severity": None}]}),
        ("eslint", [{"messages": [{"severity": 7}]}]),
        ("pmd", {"files": [{"violations": [{"priority": "x"}]}]}),
        ("cppcheck", "input.c:1:1: bogus: text\n"),
        ("flawfinder", "input.c:1:1: no level here\n"),
        ("unregistered", [{"message": "m", "severity": None}]),
    ])
    def test_severity_always_in_enum(self, normalizer, adapter_id, payload):
        findings = normalizer.normalize(adapter_id, raw(adapter_id, payload))

        assert findings
        assert all(isinstance(f.severity, Severity) for f in findings)

    def test_unregistered_adapter_uses_generic(self, normalizer):
        assert "custom" not in normalizer
        assert normalizer.entry_for("custom").func is normalize_generic

    def test_custom_registration(self):
        normalizer = FindingNormalizer()
        normalizer.register("custom", normalize_generic, Severity.LOW, {"bad": Severity.HIGH}, tool="Custom")

        findings = normalizer.normalize("custom", raw("custom", {"results": [
            {"severity": "BAD", "message": "x", "line": 2},
            {"message": "y"},
        ]}))

        assert [f.severity for f in findings] == [Severity.HIGH, Severity.LOW]
        assert findings[0].tool == "Custom"
