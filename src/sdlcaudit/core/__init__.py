"""Core module for SDLC Auditor."""

from .models import (
    Severity,
    FailureReason,
    Language,
    AnalysisRequest,
    Finding,
    AdapterFailure,
    RawAdapterResult,
    NarrativeResult,
    AnalysisReport,
    OutputFormat,
)

from .config import (
    Config,
    ConfigError,
    StaticAnalysisConfig,
    LLMConfig,
    ServerConfig,
    OutputConfig,
)

from .registry import AdapterSpec, AnalyzerRegistry, RegistryError, ALL_LANGUAGES
from .normalizer import FindingNormalizer, build_default_normalizer
from .state import RunState, RunStateError
from .composer import ReportComposer
from .orchestrator import AnalysisOrchestrator

from .analyzer import SecurityAuditor

__all__ = [
    # Models
    "Severity",
    "FailureReason",
    "Language",
    "AnalysisRequest",
    "Finding",
    "AdapterFailure",
    "RawAdapterResult",
    "NarrativeResult",
    "AnalysisReport",
    "OutputFormat",
    # Configuration
    "Config",
    "ConfigError",
    "StaticAnalysisConfig",
    "LLMConfig",
    "ServerConfig",
    "OutputConfig",
    # Orchestration
    "AdapterSpec",
    "AnalyzerRegistry",
    "RegistryError",
    "ALL_LANGUAGES",
    "FindingNormalizer",
    "build_default_normalizer",
    "RunState",
    "RunStateError",
    "ReportComposer",
    "AnalysisOrchestrator",
    # Auditor
    "SecurityAuditor",
]
