"""Security auditor facade: wires adapters, orchestrator and generation service from config."""

import logging
from typing import Any, Dict, List, Optional

from .models import (
    AnalysisReport,
    AnalysisRequest,
    FixRequest,
    FixResponse,
    ReportRequest,
    ReportResponse,
    ThreatModelRequest,
    ThreatModelResponse,
)
from .config import Config
from .normalizer import build_default_normalizer
from .orchestrator import AnalysisOrchestrator
from .registry import AnalyzerRegistry
from ..static_analysis import (
    BaseAnalyzerAdapter,
    BanditAdapter,
    CppcheckAdapter,
    ESLintAdapter,
    FlawfinderAdapter,
    PMDAdapter,
    SemgrepAdapter,
)
from ..llm import GenerationService, GroqClient, GroqError, NarrativeAdapter, supported_frameworks
from ..utils.metrics import MetricsCollector


logger = logging.getLogger(__name__)


def build_adapters(config: Config) -> List[BaseAnalyzerAdapter]:
    """Instantiate every enabled analyzer adapter."""
    sa = config.static_analysis
    adapters: List[BaseAnalyzerAdapter] = []

    if sa.enable_semgrep:
        adapters.append(SemgrepAdapter({'rules': sa.semgrep_rules}, timeout_ms=sa.semgrep_timeout_ms))
    if sa.enable_bandit:
        adapters.append(BanditAdapter({'skip_ids': sa.bandit_skip_ids}, timeout_ms=sa.bandit_timeout_ms))
    if sa.enable_eslint:
        adapters.append(ESLintAdapter(
            {'command': sa.eslint_command, 'config_file': sa.eslint_config, 'rules': sa.eslint_rules},
            timeout_ms=sa.eslint_timeout_ms,
        ))
    if sa.enable_cppcheck:
        adapters.append(CppcheckAdapter(timeout_ms=sa.cppcheck_timeout_ms))
    if sa.enable_flawfinder:
        adapters.append(FlawfinderAdapter(timeout_ms=sa.flawfinder_timeout_ms))
    if sa.enable_pmd:
        adapters.append(PMDAdapter({'ruleset': sa.pmd_ruleset}, timeout_ms=sa.pmd_timeout_ms))

    return adapters


def build_default_registry(adapters: List[BaseAnalyzerAdapter], narrative: NarrativeAdapter) -> AnalyzerRegistry:
    """Registry with the analyzers plus the mandatory narrative stage."""
    registry = AnalyzerRegistry()
    for adapter in adapters:
        registry.register(adapter.spec())
    registry.register(narrative.spec())
    return registry


class SecurityAuditor:
    """Main entry point: runs analyses and single-stage generations."""

    def __init__(self, config: Optional[Config] = None, metrics: Optional[MetricsCollector] = None):
        self.config = config or Config.get_default_config()
        self.logger = logging.getLogger(__name__)

        # Validate configuration
        config_issues = self.config.validate_config()
        if config_issues:
            self.logger.warning(f"Configuration issues: {config_issues}")

        self.metrics = metrics or MetricsCollector()

        # Initialize LLM client if configured
        self.llm_client: Optional[GroqClient] = None
        if self.config.llm.has_credentials:
            try:
                self.llm_client = GroqClient(
                    api_key=self.config.llm.api_key,
                    model=self.config.llm.model,
                    timeout=self.config.llm.timeout_seconds,
                    max_retries=self.config.llm.max_retries,
                    retry_delay=self.config.llm.retry_delay,
                    context_window=self.config.llm.context_window,
                )
                self.logger.info("LLM client initialized successfully")
            except GroqError as e:
                self.logger.error(f"Failed to initialize LLM client: {e}")
                self.llm_client = None
        else:
            self.logger.info("AI review disabled (no API key configured)")

        # Initialize components
        self.adapters = build_adapters(self.config)
        self.narrative = NarrativeAdapter(self.config.llm, client=self.llm_client)
        self.registry = build_default_registry(self.adapters, self.narrative)
        self.orchestrator = AnalysisOrchestrator(
            self.registry,
            normalizer=build_default_normalizer(),
            narrative=self.registry.get(self.narrative.adapter_id),
            metrics=self.metrics,
            run_timeout_margin_seconds=self.config.static_analysis.run_timeout_margin_seconds,
        )
        self.generation = GenerationService(
            self.orchestrator, self.config.llm, client=self.llm_client, metrics=self.metrics
        )

    def analyze(self, code: str, language: str) -> AnalysisReport:
        """Analyze a source snippet in the declared language."""
        return self.orchestrator.run(AnalysisRequest(source_text=code, language=language))

    def threat_model(self, request: ThreatModelRequest) -> ThreatModelResponse:
        return self.generation.threat_model(request)

    def fix_code(self, request: FixRequest) -> FixResponse:
        return self.generation.fix_code(request)

    def generate_report(self, request: ReportRequest) -> ReportResponse:
        return self.generation.generate_report(request)

    def get_analyzer_info(self) -> Dict[str, Any]:
        """Get information about the auditor and its components."""
        info = {
            'adapters': {
                adapter.tool_name: {
                    'available': adapter.is_available(),
                    'languages': sorted(adapter.get_target_languages()),
                    'timeout_ms': adapter.timeout_ms,
                }
                for adapter in self.adapters
            },
            'languages': self.registry.languages(),
            'frameworks': supported_frameworks(),
            'llm_enabled': self.llm_client is not None,
            'llm_model': self.config.llm.model,
            'metrics': self.metrics.get_summary_stats(),
        }

        if self.llm_client:
            info['llm_stats'] = self.llm_client.get_usage_stats()

        return info
