"""Integration tests: the configured auditor with a patched process layer."""

import json
import subprocess
from unittest.mock import patch

import pytest

from sdlcaudit.core.analyzer import SecurityAuditor
from sdlcaudit.core.config import Config
from sdlcaudit.core.models import FailureReason, Severity


SEMGREP_REPORT = {"results": [{
    "check_id": "python.lang.security.audit.dangerous-system-call",
    "start": {"line": 4},
    "extra": {"severity": "ERROR", "message": "Found dynamic content used in a system call.",
              "metadata": {"cwe": ["CWE-78"]}},
}], "errors": []}

BANDIT_REPORT = {"results": [{
    "line_number": 3,
    "issue_text": "Possible hardcoded password: 'secret123'",
    "issue_severity": "LOW",
    "issue_cwe": {"id": 259},
    "test_id": "B105",
}]}


def fake_engines(cmd, **kwargs):
    tool = cmd[0]
    if tool == "semgrep":
        return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(SEMGREP_REPORT), stderr="")
    if tool == "bandit":
        return subprocess.CompletedProcess(cmd, 1, stdout=json.dumps(BANDIT_REPORT), stderr="")
    raise AssertionError(f"unexpected engine {tool}")


@pytest.fixture
def installed_tools():
    available = {"semgrep", "bandit"}
    with patch('sdlcaudit.static_analysis.base.shutil.which',
               side_effect=lambda name: f"/usr/bin/{name}" if name in available else None), \
            patch('sdlcaudit.static_analysis.base.subprocess.run', side_effect=fake_engines):
        yield


class TestSecurityAuditor:

    def test_python_analysis(self, installed_tools, python_request):
        auditor = SecurityAuditor(Config())

        report = auditor.analyze(python_request.source_text, "python")

        by_tool = {f.tool: f for f in report.findings}
        assert by_tool["Semgrep"].severity == Severity.HIGH
        assert by_tool["Semgrep"].code == "CWE-78"
        assert by_tool["Bandit"].severity == Severity.LOW
        assert by_tool["Bandit"].code == "CWE-259"
        assert report.narrative == "AI review unavailable: GROQ_API_KEY is not configured."
        assert set(report.raw_results) == {"semgrep", "bandit"}

    def test_cpp_tools_missing(self, installed_tools):
        auditor = SecurityAuditor(Config())

        report = auditor.analyze("int main() { return 0; }", "cpp")

        failures = {f.adapter_id: f.reason for f in report.partial_failures}
        assert failures == {
            "cppcheck": FailureReason.TOOL_NOT_AVAILABLE,
            "flawfinder": FailureReason.TOOL_NOT_AVAILABLE,
            "narrative": FailureReason.AUTH_MISSING,
        }
        assert [f.tool for f in report.findings] == ["Semgrep"]

    def test_analyzer_info(self, installed_tools):
        info = SecurityAuditor(Config()).get_analyzer_info()

        assert info['adapters']['semgrep']['available'] is True
        assert info['adapters']['pmd']['available'] is False
        assert info['llm_enabled'] is False
        assert info['frameworks'] == ["STRIDE", "PASTA", "DREAD"]
        assert "python" in info['languages']

    def test_llm_client_created_with_key(self):
        with patch('sdlcaudit.core.analyzer.GroqClient') as client_class:
            auditor = SecurityAuditor(Config.load_from_dict({'llm': {'api_key': 'test-key'}}))

        assert auditor.llm_client is client_class.return_value
        assert auditor.narrative._client is client_class.return_value
