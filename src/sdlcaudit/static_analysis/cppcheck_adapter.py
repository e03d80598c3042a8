"""Cppcheck and Flawfinder integrations for C and C++."""

from typing import List, FrozenSet
from pathlib import Path

from ..core.models import Language
from .base import BaseAnalyzerAdapter


CPPCHECK_TEMPLATE = "{file}:{line}:{column}: {severity}: {message} [{id}]"


class CppcheckAdapter(BaseAnalyzerAdapter):
    """Style and correctness checks with cppcheck.

    Cppcheck reports on stderr as plain text and exits 0 whatever it finds,
    since ``--error-exitcode`` is never passed.
    """

    output_stream = "stderr"
    output_kind = "text"

    def get_tool_name(self) -> str:
        return "cppcheck"

    def get_target_languages(self) -> FrozenSet[str]:
        return frozenset({Language.CPP.value, Language.C.value})

    def build_command(self, source_path: Path) -> List[str]:
        return [
            "cppcheck",
            "--enable=all",
            "--quiet",
            "--suppress=missingIncludeSystem",
            f"--template={CPPCHECK_TEMPLATE}",
            str(source_path),
        ]


class FlawfinderAdapter(BaseAnalyzerAdapter):
    """Security-focused hits from flawfinder, one per output line."""

    output_kind = "text"

    def get_tool_name(self) -> str:
        return "flawfinder"

    def get_target_languages(self) -> FrozenSet[str]:
        return frozenset({Language.CPP.value, Language.C.value})

    def build_command(self, source_path: Path) -> List[str]:
        return [
            "flawfinder",
            "--columns",
            "--dataonly",
            "--quiet",
            "--singleline",
            str(source_path),
        ]
