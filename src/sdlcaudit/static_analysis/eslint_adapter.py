"""ESLint integration for JavaScript and TypeScript."""

import subprocess
from typing import List, FrozenSet, Optional
from pathlib import Path

from ..core.models import Language
from .base import AdapterError, BaseAnalyzerAdapter, ToolNotAvailableError


# Core rules that flag dynamic code execution and prototype tampering
SECURITY_RULES = (
    "no-eval",
    "no-implied-eval",
    "no-new-func",
    "no-script-url",
    "no-proto",
    "no-caller",
    "no-extend-native",
)

# What npx prints when --no-install finds no local eslint
NPX_MISSING_PACKAGE = ("could not determine executable to run", "npm ERR! canceled", "npm error canceled")


class ESLintAdapter(BaseAnalyzerAdapter):
    """Runs ESLint with the JSON formatter.

    The work directory holds nothing but the source file, so ESLint is
    always given its configuration: either an explicit config file or
    ``--no-config-lookup`` with the security rules passed on the command line.

    Exit code 1 means lint errors were reported. Exit code 2 is a
    configuration problem or an internal crash.
    """

    success_exit_codes = frozenset({0, 1})

    def __init__(self, config=None, timeout_ms: int = 60000):
        super().__init__(config, timeout_ms)
        self._launcher_resolves: Optional[bool] = None

    def get_tool_name(self) -> str:
        return "eslint"

    def get_target_languages(self) -> FrozenSet[str]:
        return frozenset({Language.JAVASCRIPT.value, Language.TYPESCRIPT.value})

    def launcher(self) -> List[str]:
        return list(self.config.get('command') or ["npx", "--no-install", "eslint"])

    def build_command(self, source_path: Path) -> List[str]:
        cmd = self.launcher()

        config_file = self.config.get('config_file')
        if config_file:
            cmd.extend(["-c", str(Path(config_file).resolve())])
        else:
            cmd.append("--no-config-lookup")
            for rule in self.config.get('rules') or SECURITY_RULES:
                cmd.extend(["--rule", f"{rule}: error"])

        return cmd + ["-f", "json", str(source_path)]

    def version_command(self) -> List[str]:
        return self.launcher() + ["--version"]

    def is_available(self) -> bool:
        """The launcher must be on PATH and, for npx, resolve an installed eslint."""
        if not super().is_available():
            return False
        if self.get_executable() != "npx":
            return True
        if self._launcher_resolves is None:
            self._launcher_resolves = self._launcher_finds_eslint()
        return self._launcher_resolves

    def _launcher_finds_eslint(self) -> bool:
        try:
            result = subprocess.run(
                self.version_command(),
                capture_output=True,
                text=True,
                timeout=30
            )
        except (subprocess.SubprocessError, OSError) as e:
            self.logger.debug(f"eslint launcher check failed: {e}")
            return False
        if result.returncode != 0:
            self.logger.info("npx could not resolve a local eslint installation")
        return result.returncode == 0

    def exit_error(self, result: subprocess.CompletedProcess) -> AdapterError:
        output = f"{result.stdout or ''}\n{result.stderr or ''}"
        if any(marker in output for marker in NPX_MISSING_PACKAGE):
            return ToolNotAvailableError("eslint is not installed for npx")
        return super().exit_error(result)
