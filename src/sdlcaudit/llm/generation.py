"""Threat modeling, code fixing and report writing on top of the text-generation adapter."""

import logging
import re
from typing import List, Optional

from ..core.config import LLMConfig
from ..core.models import (
    FixRequest,
    FixResponse,
    ReportRequest,
    ReportResponse,
    ThreatModelRequest,
    ThreatModelResponse,
    VulnerabilityRef,
)
from ..core.orchestrator import AnalysisOrchestrator, GenerationOutcome
from .groq_client import GroqClient
from .narrative import TextGenerationAdapter
from .prompts import FIX_TEMPLATE, REPORT_TEMPLATE, PromptTemplate, select_framework


logger = logging.getLogger(__name__)

CODE_FENCE = re.compile(r"```[\w+#.\-]*[ \t]*\n(?P<body>.*?)\n?```", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or ``text`` unchanged."""
    match = CODE_FENCE.search(text or "")
    if match:
        return match.group('body')
    return text


def format_vulnerabilities(vulnerabilities: List[VulnerabilityRef]) -> str:
    if not vulnerabilities:
        return "None reported by the scanners."
    return "\n".join(f"- {v.describe()}" for v in vulnerabilities)


class GenerationService:
    """Single-stage generation runs that share the orchestrator's failure contract."""

    def __init__(self,
                 orchestrator: AnalysisOrchestrator,
                 llm_config: LLMConfig,
                 client: Optional[GroqClient] = None,
                 metrics=None):
        self.orchestrator = orchestrator
        self.llm_config = llm_config
        self.metrics = metrics
        self.threat_model_adapter = TextGenerationAdapter(
            "threat_model", llm_config, "Threat model unavailable", client=client)
        self.fix_adapter = TextGenerationAdapter(
            "fix", llm_config, "Fixed code unavailable", client=client)
        self.report_adapter = TextGenerationAdapter(
            "report", llm_config, "Report unavailable", client=client)
        self.logger = logging.getLogger(__name__)

    def threat_model(self, request: ThreatModelRequest) -> ThreatModelResponse:
        """Threat model ``request.code`` with the requested framework (STRIDE if unknown)."""
        template = select_framework(request.framework)
        if template.name.upper() != (request.framework or "").strip().upper():
            self.logger.info(f"Unknown framework '{request.framework}', using {template.name}")

        timeout = self.llm_config.threat_model_timeout_seconds
        outcome = self._run(
            self.threat_model_adapter,
            template,
            {"language": request.language, "code": request.code},
            timeout,
        )
        if outcome.ok:
            return ThreatModelResponse(threat_model=outcome.text, framework=template.name)
        return ThreatModelResponse(
            threat_model=outcome.failure.message,
            framework=template.name,
            error=outcome.failure.reason.value,
        )

    def fix_code(self, request: FixRequest) -> FixResponse:
        outcome = self._run(
            self.fix_adapter,
            FIX_TEMPLATE,
            {
                "language": request.language,
                "code": request.code,
                "vulnerabilities": format_vulnerabilities(request.vulnerabilities),
            },
            self.llm_config.threat_model_timeout_seconds,
        )
        if outcome.ok:
            return FixResponse(fixed_code=strip_code_fences(outcome.text))
        return FixResponse(fixed_code=outcome.failure.message, error=outcome.failure.reason.value)

    def generate_report(self, request: ReportRequest) -> ReportResponse:
        outcome = self._run(
            self.report_adapter,
            REPORT_TEMPLATE,
            {
                "language": request.language,
                "original_code": request.original_code,
                "fixed_code": request.fixed_code or "(no fixed version supplied)",
                "vulnerabilities": format_vulnerabilities(request.vulnerabilities),
            },
            self.llm_config.threat_model_timeout_seconds,
        )
        if outcome.ok:
            return ReportResponse(report=outcome.text)
        return ReportResponse(report=outcome.failure.message, error=outcome.failure.reason.value)

    def _run(self,
             adapter: TextGenerationAdapter,
             template: PromptTemplate,
             variables: dict,
             timeout_seconds: int) -> GenerationOutcome:
        outcome = self.orchestrator.generate(
            adapter.adapter_id,
            lambda: adapter.generate(template, variables, timeout_seconds=timeout_seconds),
            timeout_ms=timeout_seconds * 1000,
        )
        if outcome.failure is not None and not outcome.failure.message.startswith(adapter.unavailable_prefix):
            outcome.failure = outcome.failure.model_copy(
                update={"message": adapter.explain(outcome.failure.message)})
        if self.metrics:
            self.metrics.record_generation(template.name, outcome.ok)
        return outcome
