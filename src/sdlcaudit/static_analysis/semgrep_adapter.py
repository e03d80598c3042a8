"""Semgrep integration, the universal scanner."""

from typing import List, FrozenSet
from pathlib import Path

from ..core.registry import ALL_LANGUAGES
from .base import BaseAnalyzerAdapter


class SemgrepAdapter(BaseAnalyzerAdapter):
    """Integration with Semgrep for multi-language static analysis."""

    # Without --error semgrep exits 0 even with findings; 1 is kept for
    # rule sets that force blocking findings.
    success_exit_codes = frozenset({0, 1})

    def get_tool_name(self) -> str:
        return "semgrep"

    def get_target_languages(self) -> FrozenSet[str]:
        return frozenset({ALL_LANGUAGES})

    def build_command(self, source_path: Path) -> List[str]:
        cmd = ["semgrep", "--json", "--quiet"]

        rules = self.config.get('rules') or ['auto']
        for rule in rules:
            cmd.extend(["--config", rule])

        cmd.append(str(source_path))
        return cmd
