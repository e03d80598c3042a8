"""Base class for external analyzer adapters."""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, FrozenSet, Iterator
from contextlib import contextmanager
from pathlib import Path
import json
import logging
import shutil
import subprocess
import tempfile
import time

from ..core.models import AnalysisRequest, AdapterFailure, AdapterOutcome, FailureReason, RawAdapterResult
from ..core.registry import AdapterSpec


logger = logging.getLogger(__name__)


class AdapterError(Exception):
    """Base exception for adapter errors."""

    reason = FailureReason.INTERNAL_ERROR

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ToolNotAvailableError(AdapterError):
    """Raised when the engine executable is missing."""

    reason = FailureReason.TOOL_NOT_AVAILABLE


class ToolTimeoutError(AdapterError):
    """Raised when the engine exceeds the adapter timeout."""

    reason = FailureReason.TIMEOUT


class MalformedOutputError(AdapterError):
    """Raised when the engine ran but its output cannot be parsed."""

    reason = FailureReason.MALFORMED_OUTPUT


class UnexpectedExitError(AdapterError):
    """Raised when the engine exits outside its documented success contract."""

    reason = FailureReason.NON_ZERO_EXIT_UNEXPECTED


class BaseAnalyzerAdapter(ABC):
    """Wraps one external analysis engine behind the invoke/timeout/result contract."""

    # Exit codes the engine uses for "ran fine", including "findings present"
    success_exit_codes: FrozenSet[int] = frozenset({0})

    # Where the engine writes its report
    output_stream: str = "stdout"

    # "json" payloads are parsed, "text" payloads are handed over as-is
    output_kind: str = "json"

    def __init__(self, config: Optional[Dict[str, Any]] = None, timeout_ms: int = 60000):
        self.config = config or {}
        self.timeout_ms = timeout_ms
        self.tool_name = self.get_tool_name()
        self.logger = logging.getLogger(f"{__name__}.{self.tool_name}")

    @abstractmethod
    def get_tool_name(self) -> str:
        """Get the adapter id, which is also the tool name."""
        pass

    @abstractmethod
    def get_target_languages(self) -> FrozenSet[str]:
        """Languages this adapter runs for. ``ALL_LANGUAGES`` means every language."""
        pass

    @abstractmethod
    def build_command(self, source_path: Path) -> List[str]:
        """Build the engine command line for a materialized source file."""
        pass

    def get_executable(self) -> str:
        return self.build_command(Path("input"))[0]

    def version_command(self) -> List[str]:
        return [self.get_executable(), "--version"]

    def is_available(self) -> bool:
        """Check if the engine executable can be found."""
        return shutil.which(self.get_executable()) is not None

    def get_version(self) -> Optional[str]:
        """Get engine version."""
        if not self.is_available():
            return None
        try:
            result = subprocess.run(
                self.version_command(),
                capture_output=True,
                text=True,
                timeout=10
            )
            if result.returncode == 0 and result.stdout.strip():
                return result.stdout.strip().splitlines()[0]
        except (subprocess.SubprocessError, OSError) as e:
            self.logger.debug(f"Could not read {self.tool_name} version: {e}")
        return None

    def spec(self) -> AdapterSpec:
        """Describe this adapter for the registry."""
        return AdapterSpec(
            id=self.tool_name,
            target_languages=self.get_target_languages(),
            invoke=self.invoke,
            timeout_ms=self.timeout_ms,
        )

    def invoke(self, request: AnalysisRequest) -> AdapterOutcome:
        """Run the engine against the request source. Never raises."""
        start = time.monotonic()
        try:
            result = self._execute(request)
            self.logger.info(
                f"{self.tool_name} finished with exit code {result.exit_code} "
                f"in {result.duration_ms}ms"
            )
            return result
        except AdapterError as e:
            self.logger.warning(f"{self.tool_name} failed ({e.reason.value}): {e.message}")
            return AdapterFailure(adapter_id=self.tool_name, reason=e.reason, message=e.message)
        except Exception as e:
            elapsed = int((time.monotonic() - start) * 1000)
            self.logger.exception(f"{self.tool_name} crashed after {elapsed}ms")
            return AdapterFailure(
                adapter_id=self.tool_name,
                reason=FailureReason.INTERNAL_ERROR,
                message=str(e),
            )

    @contextmanager
    def materialize(self, request: AnalysisRequest) -> Iterator[Path]:
        """Write the source into a private, uniquely named work directory."""
        with tempfile.TemporaryDirectory(prefix=f"sdlcaudit-{self.tool_name}-") as workdir:
            source_path = Path(workdir) / f"input.{request.file_extension}"
            source_path.write_text(request.source_text, encoding="utf-8")
            yield source_path

    def _execute(self, request: AnalysisRequest) -> RawAdapterResult:
        if not self.is_available():
            raise ToolNotAvailableError(f"{self.tool_name} is not available (launcher: {self.get_executable()})")

        start = time.monotonic()
        with self.materialize(request) as source_path:
            cmd = self.build_command(source_path)
            self.logger.debug(f"Running {self.tool_name} command: {' '.join(cmd)}")

            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout_ms / 1000,
                    cwd=str(source_path.parent),
                )
            except subprocess.TimeoutExpired:
                raise ToolTimeoutError(f"{self.tool_name} exceeded {self.timeout_ms}ms")
            except FileNotFoundError as e:
                raise ToolNotAvailableError(f"{self.get_executable()} could not be started: {e}")

            if result.returncode not in self.success_exit_codes:
                raise self.exit_error(result)

            output = result.stdout if self.output_stream == "stdout" else result.stderr
            payload = self.parse_output(self._relativize(output or "", source_path))

        return RawAdapterResult(
            adapter_id=self.tool_name,
            payload=payload,
            exit_code=result.returncode,
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    def exit_error(self, result: subprocess.CompletedProcess) -> AdapterError:
        """Error for an exit code outside the engine's success contract."""
        stderr = (result.stderr or "").strip()[-500:]
        return UnexpectedExitError(
            f"{self.tool_name} exited with code {result.returncode}: {stderr}",
            {"exit_code": result.returncode},
        )

    def parse_output(self, output: str) -> Any:
        """Turn the engine's raw output into a payload for the normalizer."""
        if self.output_kind == "text":
            return output
        if not output.strip():
            raise MalformedOutputError(f"{self.tool_name} produced no output")
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            self.logger.debug(f"{self.tool_name} output was: {output[:2000]}")
            raise MalformedOutputError(f"Failed to parse {self.tool_name} output as JSON: {e}")

    def _relativize(self, output: str, source_path: Path) -> str:
        """Hide the private work directory from payloads shown to callers."""
        return output.replace(str(source_path.parent) + "/", "").replace(str(source_path), source_path.name)
