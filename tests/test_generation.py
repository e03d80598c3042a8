"""Test the narrative adapter and the generation service."""

from unittest.mock import Mock

import pytest

from sdlcaudit.core.config import LLMConfig
from sdlcaudit.core.models import (
    AdapterFailure,
    FailureReason,
    FixRequest,
    NarrativeResult,
    ReportRequest,
    ThreatModelRequest,
    VulnerabilityRef,
)
from sdlcaudit.core.orchestrator import AnalysisOrchestrator
from sdlcaudit.core.registry import AnalyzerRegistry
from sdlcaudit.llm import GenerationService, NarrativeAdapter, RateLimitError, UpstreamConnectionError
from sdlcaudit.llm.generation import format_vulnerabilities, strip_code_fences
from sdlcaudit.llm.groq_client import LLMResponse
from sdlcaudit.utils.metrics import MetricsCollector


def llm_response(content):
    return LLMResponse(
        content=content,
        model="llama-3.3-70b-versatile",
        tokens_used=42,
        finish_reason="stop",
        response_time=0.1,
        metadata={},
    )


@pytest.fixture
def client():
    client = Mock()
    client.chat_completion.return_value = llm_response("Review text")
    return client


@pytest.fixture
def keyed_config():
    return LLMConfig(api_key="test-key")


def service(client, config, metrics=None):
    orchestrator = AnalysisOrchestrator(AnalyzerRegistry(), run_timeout_margin_seconds=1.0)
    return GenerationService(orchestrator, config, client=client, metrics=metrics)


class TestNarrativeAdapter:

    def test_spec_is_mandatory_and_universal(self):
        spec = NarrativeAdapter(LLMConfig()).spec()

        assert spec.id == "narrative"
        assert spec.mandatory
        assert spec.is_universal
        assert spec.timeout_ms == 30000

    def test_success(self, client, keyed_config, python_request):
        outcome = NarrativeAdapter(keyed_config, client=client).invoke(python_request)

        assert isinstance(outcome, NarrativeResult)
        assert outcome.text == "Review text"
        kwargs = client.chat_completion.call_args.kwargs
        assert kwargs['max_tokens'] == 800
        assert kwargs['temperature'] == 0.3
        messages = client.chat_completion.call_args.args[0]
        assert python_request.source_text in messages[1]['content']

    def test_missing_credential(self, python_request):
        outcome = NarrativeAdapter(LLMConfig()).invoke(python_request)

        assert isinstance(outcome, AdapterFailure)
        assert outcome.reason == FailureReason.AUTH_MISSING
        assert outcome.message == "AI review unavailable: GROQ_API_KEY is not configured."

    def test_quota(self, client, keyed_config, python_request):
        client.chat_completion.side_effect = RateLimitError("Rate limit exceeded: 429")

        outcome = NarrativeAdapter(keyed_config, client=client).invoke(python_request)

        assert outcome.reason == FailureReason.QUOTA_OR_RATE_LIMITED
        assert outcome.message == "AI review unavailable: Rate limit exceeded: 429"

    def test_empty_response_is_malformed(self, client, keyed_config, python_request):
        client.chat_completion.return_value = llm_response("   ")

        outcome = NarrativeAdapter(keyed_config, client=client).invoke(python_request)

        assert outcome.reason == FailureReason.MALFORMED_RESPONSE

    def test_unexpected_error(self, client, keyed_config, python_request):
        client.chat_completion.side_effect = KeyError("choices")

        outcome = NarrativeAdapter(keyed_config, client=client).invoke(python_request)

        assert outcome.reason == FailureReason.INTERNAL_ERROR
        assert outcome.message.startswith("AI review unavailable:")


class TestThreatModel:

    def test_dread_uses_dread_template(self, client, keyed_config):
        client.chat_completion.return_value = llm_response("DREAD analysis")

        result = service(client, keyed_config).threat_model(
            ThreatModelRequest(code="eval(x)", language="javascript", framework="DREAD"))

        assert result.framework == "DREAD"
        assert result.threat_model == "DREAD analysis"
        assert result.error is None
        system = client.chat_completion.call_args.args[0][0]['content']
        assert "DREAD" in system
        assert client.chat_completion.call_args.kwargs['timeout'] == 40

    def test_unknown_framework_uses_stride(self, client, keyed_config):
        result = service(client, keyed_config).threat_model(
            ThreatModelRequest(code="eval(x)", language="javascript", framework="OCTAVE"))

        assert result.framework == "STRIDE"
        assert "STRIDE" in client.chat_completion.call_args.args[0][0]['content']

    def test_missing_credential(self):
        result = service(None, LLMConfig()).threat_model(
            ThreatModelRequest(code="x", language="python"))

        assert result.error == "AuthMissing"
        assert result.threat_model == "Threat model unavailable: GROQ_API_KEY is not configured."

    def test_network_failure(self, client, keyed_config):
        client.chat_completion.side_effect = UpstreamConnectionError("Could not reach Groq")

        result = service(client, keyed_config).threat_model(
            ThreatModelRequest(code="x", language="python", framework="PASTA"))

        assert result.framework == "PASTA"
        assert result.error == "NetworkError"
        assert result.threat_model == "Threat model unavailable: Could not reach Groq"


class TestFixAndReport:

    def test_fix_strips_fences(self, client, keyed_config):
        client.chat_completion.return_value = llm_response(
            "Here you go:\n```python\nimport subprocess\nsubprocess.run(['ls'])\n```\n")

        result = service(client, keyed_config).fix_code(FixRequest(
            code="os.system('ls')",
            language="python",
            vulnerabilities=[VulnerabilityRef(tool="Bandit", severity="HIGH", line=1, message="shell")],
        ))

        assert result.fixed_code == "import subprocess\nsubprocess.run(['ls'])"
        assert result.error is None
        user = client.chat_completion.call_args.args[0][1]['content']
        assert "[Bandit] HIGH line 1: shell" in user

    def test_fix_failure(self):
        result = service(None, LLMConfig()).fix_code(FixRequest(code="x", language="python"))

        assert result.fixed_code == "Fixed code unavailable: GROQ_API_KEY is not configured."
        assert result.error == "AuthMissing"

    def test_report(self, client, keyed_config):
        client.chat_completion.return_value = llm_response("Executive Summary ...")
        metrics = MetricsCollector()

        result = service(client, keyed_config, metrics=metrics).generate_report(
            ReportRequest(original_code="a", fixed_code="b", language="python"))

        assert result.report == "Executive Summary ..."
        assert metrics.get_summary_stats()["generation_counts"] == {"report_ok": 1}

    def test_report_failure(self):
        result = service(None, LLMConfig()).generate_report(
            ReportRequest(original_code="a", language="python"))

        assert result.report == "Report unavailable: GROQ_API_KEY is not configured."


class TestHelpers:

    def test_strip_code_fences_without_fence(self):
        assert strip_code_fences("x = 1") == "x = 1"

    def test_strip_code_fences_plain_fence(self):
        assert strip_code_fences("```\nx = 1\n```") == "x = 1"

    def test_format_vulnerabilities_empty(self):
        assert format_vulnerabilities([]) == "None reported by the scanners."
