"""PMD integration for Java source files."""

from typing import List, FrozenSet
from pathlib import Path

from ..core.models import Language
from .base import BaseAnalyzerAdapter


class PMDAdapter(BaseAnalyzerAdapter):
    """Runs ``pmd check`` on a single Java file.

    PMD 7 exits 4 when violations are found and 5 on recoverable
    processing errors, which still come with a usable report.
    """

    success_exit_codes = frozenset({0, 4, 5})

    def get_tool_name(self) -> str:
        return "pmd"

    def get_target_languages(self) -> FrozenSet[str]:
        return frozenset({Language.JAVA.value})

    def build_command(self, source_path: Path) -> List[str]:
        ruleset = self.config.get('ruleset') or "rulesets/java/quickstart.xml"
        return [
            "pmd", "check",
            "--no-cache",
            "--no-progress",
            "-f", "json",
            "-R", ruleset,
            "-d", str(source_path),
        ]
