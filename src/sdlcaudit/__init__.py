"""
SDLC Auditor: security compliance auditing for source snippets.

Runs the static analyzers that apply to a declared language concurrently,
normalizes their findings into one severity-tagged list and adds an AI
review, threat models, suggested fixes and remediation reports.
"""

__version__ = "0.1.0"

from .core.models import Finding, AnalysisReport, Severity, FailureReason
from .core.analyzer import SecurityAuditor
from .core.config import Config

__all__ = [
    "Finding",
    "AnalysisReport",
    "Severity",
    "FailureReason",
    "SecurityAuditor",
    "Config",
]
