"""External analyzer adapters for SDLC Auditor."""

from .base import (
    BaseAnalyzerAdapter,
    AdapterError,
    ToolNotAvailableError,
    ToolTimeoutError,
    MalformedOutputError,
    UnexpectedExitError,
)
from .bandit_adapter import BanditAdapter
from .semgrep_adapter import SemgrepAdapter
from .eslint_adapter import ESLintAdapter
from .cppcheck_adapter import CppcheckAdapter, FlawfinderAdapter
from .pmd_adapter import PMDAdapter

__all__ = [
    "BaseAnalyzerAdapter",
    "AdapterError",
    "ToolNotAvailableError",
    "ToolTimeoutError",
    "MalformedOutputError",
    "UnexpectedExitError",
    "BanditAdapter",
    "SemgrepAdapter",
    "ESLintAdapter",
    "CppcheckAdapter",
    "FlawfinderAdapter",
    "PMDAdapter",
]
