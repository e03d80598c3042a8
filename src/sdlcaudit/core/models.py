"""Core data models for SDLC Auditor."""

from enum import Enum
from typing import List, Optional, Dict, Any, Union
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, AliasChoices


class Severity(str, Enum):
    """Unified severity levels for findings."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"
    WARNING = "WARNING"

    @classmethod
    def coerce(cls, value: Any, default: "Severity" = None) -> "Severity":
        """Return the member matching ``value`` (case-insensitive) or ``default``."""
        if default is None:
            default = cls.INFO
        if isinstance(value, cls):
            return value
        if value is None:
            return default
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return default


class FailureReason(str, Enum):
    """Reasons an adapter or upstream service can fail."""

    # Analyzer adapters
    TOOL_NOT_AVAILABLE = "ToolNotAvailable"
    MALFORMED_OUTPUT = "MalformedOutput"
    TIMEOUT = "Timeout"
    NON_ZERO_EXIT_UNEXPECTED = "NonZeroExitUnexpected"

    # Upstream text generation
    AUTH_MISSING = "AuthMissing"
    QUOTA_OR_RATE_LIMITED = "QuotaOrRateLimited"
    NETWORK_ERROR = "NetworkError"
    MALFORMED_RESPONSE = "MalformedResponse"

    # Anything caught at a boundary that nobody anticipated
    INTERNAL_ERROR = "InternalError"


class Language(str, Enum):
    """Languages with a known mapping. Other values are still accepted."""

    PYTHON = "python"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    CPP = "cpp"
    C = "c"
    JAVA = "java"
    GO = "go"
    PHP = "php"
    RUBY = "ruby"


FILE_EXTENSIONS: Dict[str, str] = {
    Language.PYTHON.value: "py",
    Language.JAVASCRIPT.value: "js",
    Language.TYPESCRIPT.value: "ts",
    Language.CPP.value: "cpp",
    Language.C.value: "c",
    Language.JAVA.value: "java",
    Language.GO.value: "go",
    Language.PHP.value: "php",
    Language.RUBY.value: "rb",
}


def clean_language(v: str) -> str:
    """Lower-case and strip a declared language, rejecting blank values."""
    v = v.strip().lower()
    if not v:
        raise ValueError('language must not be blank')
    return v


def file_extension_for(language: str) -> str:
    """Get the file extension used for the transient source artifact."""
    return FILE_EXTENSIONS.get(language, "txt")


class AnalysisRequest(BaseModel):
    """A source snippet and its declared language."""

    model_config = ConfigDict(frozen=True)

    source_text: str = Field(min_length=1)
    language: str = Field(min_length=1)

    @field_validator('language')
    @classmethod
    def normalize_language(cls, v: str) -> str:
        return clean_language(v)

    @property
    def file_extension(self) -> str:
        return file_extension_for(self.language)

    @property
    def is_known_language(self) -> bool:
        return self.language in FILE_EXTENSIONS


class Finding(BaseModel):
    """One normalized, severity-tagged observation about the submitted source."""

    tool: str
    severity: Severity = Severity.INFO
    line: Optional[int] = None
    message: str
    code: Optional[str] = None
    reference: Optional[str] = None

    @field_validator('severity', mode='before')
    @classmethod
    def coerce_severity(cls, v):
        """Map any foreign severity vocabulary onto the unified set."""
        return Severity.coerce(v)

    @field_validator('line', mode='before')
    @classmethod
    def coerce_line(cls, v):
        if v is None or isinstance(v, bool):
            return None
        try:
            line = int(v)
        except (TypeError, ValueError):
            return None
        return line if line >= 0 else None

    def signature(self) -> tuple:
        """Hashable identity used for order-insensitive comparisons."""
        return (self.tool, self.severity.value, self.line, self.message, self.code, self.reference)


class AdapterFailure(BaseModel):
    """A typed, non-fatal failure of one adapter."""

    adapter_id: str
    reason: FailureReason
    message: str = ""

    def describe(self) -> str:
        return f"{self.adapter_id}: {self.reason.value}" + (f" ({self.message})" if self.message else "")


class RawAdapterResult(BaseModel):
    """Analyzer-specific payload, handed from an adapter to the normalizer."""

    adapter_id: str
    payload: Any = None
    exit_code: Optional[int] = None
    duration_ms: Optional[int] = None


class NarrativeResult(BaseModel):
    """Free-text output of the narrative stage. Bypasses normalization."""

    adapter_id: str
    text: str
    model: Optional[str] = None
    tokens_used: int = 0


AdapterOutcome = Union[RawAdapterResult, NarrativeResult, AdapterFailure]


class AnalysisReport(BaseModel):
    """Final output of an orchestration run."""

    language: str
    findings: List[Finding] = Field(default_factory=list)
    narrative: Optional[str] = None
    partial_failures: List[AdapterFailure] = Field(default_factory=list)
    raw_results: Dict[str, Any] = Field(default_factory=dict)
    tools_run: List[str] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    duration_seconds: Optional[float] = None

    def findings_by_severity(self) -> Dict[Severity, int]:
        counts: Dict[Severity, int] = {}
        for finding in self.findings:
            counts[finding.severity] = counts.get(finding.severity, 0) + 1
        return counts

    def findings_by_tool(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for finding in self.findings:
            counts[finding.tool] = counts.get(finding.tool, 0) + 1
        return counts

    def get_high_severity_findings(self) -> List[Finding]:
        """Get all high and critical severity findings."""
        return [
            f for f in self.findings
            if f.severity in [Severity.CRITICAL, Severity.HIGH]
        ]

    def failed_adapters(self) -> List[str]:
        return [failure.adapter_id for failure in self.partial_failures]


class VulnerabilityRef(BaseModel):
    """A finding as echoed back by a client for fix/report generation."""

    model_config = ConfigDict(extra='ignore')

    tool: Optional[str] = None
    severity: Optional[str] = None
    line: Optional[Union[int, str]] = None
    message: str = ""
    code: Optional[str] = Field(default=None, validation_alias=AliasChoices('code', 'cwe', 'ruleId', 'testId'))

    def describe(self) -> str:
        parts = []
        if self.tool:
            parts.append(f"[{self.tool}]")
        if self.severity:
            parts.append(str(self.severity).upper())
        if self.line not in (None, "", "N/A"):
            parts.append(f"line {self.line}:")
        parts.append(self.message or "Security issue detected")
        if self.code and self.code != "N/A":
            parts.append(f"({self.code})")
        return " ".join(parts)


class LanguageBody(BaseModel):
    """Base for request bodies that carry a declared language."""

    language: str = Field(min_length=1)

    @field_validator('language')
    @classmethod
    def normalize_language(cls, v: str) -> str:
        return clean_language(v)


class ThreatModelRequest(LanguageBody):
    code: str = Field(min_length=1)
    framework: Optional[str] = "STRIDE"


class ThreatModelResponse(BaseModel):
    threat_model: str
    framework: str
    error: Optional[str] = None


class FixRequest(LanguageBody):
    code: str = Field(min_length=1)
    vulnerabilities: List[VulnerabilityRef] = Field(default_factory=list)


class FixResponse(BaseModel):
    fixed_code: str
    error: Optional[str] = None


class ReportRequest(LanguageBody):
    model_config = ConfigDict(populate_by_name=True)

    original_code: str = Field(min_length=1, validation_alias=AliasChoices('original_code', 'originalCode'))
    fixed_code: str = Field(default="", validation_alias=AliasChoices('fixed_code', 'fixedCode'))
    vulnerabilities: List[VulnerabilityRef] = Field(default_factory=list)


class ReportResponse(BaseModel):
    report: str
    error: Optional[str] = None


class OutputFormat(str, Enum):
    """Supported output formats."""

    JSON = "json"
    TABLE = "table"
    MARKDOWN = "markdown"
