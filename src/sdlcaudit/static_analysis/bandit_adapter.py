"""Bandit security linter integration."""

from typing import List, FrozenSet
from pathlib import Path

from ..core.models import Language
from .base import BaseAnalyzerAdapter


class BanditAdapter(BaseAnalyzerAdapter):
    """Integration with Bandit security linter for Python."""

    # Bandit exits 1 when issues are found
    success_exit_codes = frozenset({0, 1})

    def get_tool_name(self) -> str:
        return "bandit"

    def get_target_languages(self) -> FrozenSet[str]:
        return frozenset({Language.PYTHON.value})

    def build_command(self, source_path: Path) -> List[str]:
        cmd = ["bandit", "-f", "json", "-q"]

        skip_ids = self.config.get('skip_ids') or []
        if skip_ids:
            cmd.extend(["-s", ",".join(skip_ids)])

        cmd.append(str(source_path))
        return cmd
