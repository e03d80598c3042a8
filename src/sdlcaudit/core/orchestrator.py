"""Runs the resolved adapter set for one request and joins on their settlement."""

import logging
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Callable, List, Optional

from .models import (
    AnalysisRequest,
    AnalysisReport,
    AdapterFailure,
    AdapterOutcome,
    FailureReason,
    NarrativeResult,
    RawAdapterResult,
)
from .normalizer import FindingNormalizer, build_default_normalizer
from .composer import ReportComposer
from .registry import AdapterSpec, AnalyzerRegistry
from .state import RunState, Settlement


logger = logging.getLogger(__name__)


@dataclass
class GenerationOutcome:
    """Result of a single-stage text generation run."""

    text: Optional[str] = None
    failure: Optional[AdapterFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.text is not None


class AnalysisOrchestrator:
    """Fans a request out to every resolved adapter and composes one report."""

    def __init__(self,
                 registry: AnalyzerRegistry,
                 normalizer: Optional[FindingNormalizer] = None,
                 narrative: Optional[AdapterSpec] = None,
                 composer=None,
                 metrics=None,
                 run_timeout_margin_seconds: float = 5.0):
        self.registry = registry
        self.normalizer = normalizer or build_default_normalizer()
        self.narrative = narrative
        self.composer = composer or ReportComposer()
        self.metrics = metrics
        self.run_timeout_margin_seconds = run_timeout_margin_seconds
        self.logger = logging.getLogger(__name__)

    def resolve(self, language: str) -> List[AdapterSpec]:
        """Registry resolution plus the narrative stage, which is never skipped."""
        specs = self.registry.resolve(language)
        if self.narrative is not None and self.narrative.id not in {s.id for s in specs}:
            specs.append(self.narrative)
        return specs

    def run(self, request: AnalysisRequest) -> AnalysisReport:
        """Run every adapter for ``request`` and compose the report."""
        start = time.monotonic()
        specs = self.resolve(request.language)
        narrative_id = self._narrative_id(specs)
        state = RunState.start(request, specs, narrative_id=narrative_id)

        self.logger.info(
            f"Starting analysis of {len(request.source_text)} chars of {request.language} "
            f"with {[s.id for s in specs]}"
        )
        if self.metrics:
            self.metrics.record_analysis(request.language)

        guard = self._guard_seconds(specs)
        executor = ThreadPoolExecutor(max_workers=max(1, len(specs)), thread_name_prefix="adapter")
        try:
            submitted = time.monotonic()
            run_deadline = submitted + guard
            future_to_spec = {}
            deadlines = {}
            for spec in specs:
                future = executor.submit(self._timed_invoke, spec, request)
                future_to_spec[future] = spec
                deadlines[future] = min(submitted + spec.timeout_ms / 1000, run_deadline)

            waiting = set(future_to_spec)
            while waiting:
                remaining = min(deadlines[f] for f in waiting) - time.monotonic()
                done, _ = wait(waiting, timeout=max(0.0, remaining), return_when=FIRST_COMPLETED)

                for future in done:
                    waiting.discard(future)
                    spec = future_to_spec[future]
                    try:
                        outcome, elapsed = future.result()
                    except Exception as e:
                        self.logger.error(f"Adapter {spec.id} raised past its boundary: {e}")
                        outcome = AdapterFailure(
                            adapter_id=spec.id, reason=FailureReason.INTERNAL_ERROR, message=str(e)
                        )
                        elapsed = None
                    state.settle(self._settle(spec, outcome, elapsed))

                now = time.monotonic()
                for future in sorted((f for f in waiting if deadlines[f] <= now),
                                     key=lambda f: future_to_spec[f].id):
                    waiting.discard(future)
                    future.cancel()
                    spec = future_to_spec[future]
                    budget = deadlines[future] - submitted
                    self.logger.warning(f"Adapter {spec.id} did not settle within {budget:.1f}s")
                    failure = AdapterFailure(
                        adapter_id=spec.id,
                        reason=FailureReason.TIMEOUT,
                        message=f"{spec.id} did not finish within {budget:.1f}s",
                    )
                    if self.metrics:
                        self.metrics.record_adapter_outcome(spec.id, failure, None)
                    state.settle(Settlement(adapter_id=spec.id, failure=failure))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        report = self.composer.compose(state, duration_seconds=time.monotonic() - start)

        if self.metrics:
            self.metrics.record_findings(report.findings)

        self.logger.info(
            f"Analysis complete: {len(report.findings)} findings, "
            f"{len(report.partial_failures)} partial failures in {report.duration_seconds:.2f}s"
        )
        return report

    def generate(self,
                 adapter_id: str,
                 invoke: Callable[[], AdapterOutcome],
                 timeout_ms: int) -> GenerationOutcome:
        """Single-stage run: one mandatory text-generation adapter, same failure contract."""
        guard = timeout_ms / 1000 + self.run_timeout_margin_seconds
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="generation")
        start = time.monotonic()
        try:
            future = executor.submit(invoke)
            try:
                outcome = future.result(timeout=guard)
            except FuturesTimeoutError:
                outcome = AdapterFailure(
                    adapter_id=adapter_id,
                    reason=FailureReason.TIMEOUT,
                    message=f"{adapter_id} did not finish within {guard:.1f}s",
                )
            except Exception as e:
                self.logger.error(f"Generation adapter {adapter_id} raised past its boundary: {e}")
                outcome = AdapterFailure(
                    adapter_id=adapter_id, reason=FailureReason.INTERNAL_ERROR, message=str(e)
                )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if self.metrics:
            self.metrics.record_adapter_outcome(adapter_id, outcome, time.monotonic() - start)

        if isinstance(outcome, NarrativeResult):
            return GenerationOutcome(text=outcome.text)
        if isinstance(outcome, AdapterFailure):
            return GenerationOutcome(failure=outcome)
        return GenerationOutcome(failure=AdapterFailure(
            adapter_id=adapter_id,
            reason=FailureReason.MALFORMED_RESPONSE,
            message=f"Unexpected outcome type {type(outcome).__name__}",
        ))

    def _timed_invoke(self, spec: AdapterSpec, request: AnalysisRequest):
        start = time.monotonic()
        outcome = spec.invoke(request)
        return outcome, time.monotonic() - start

    def _settle(self, spec: AdapterSpec, outcome: AdapterOutcome, elapsed: Optional[float]) -> Settlement:
        """Turn an adapter outcome into a settlement, normalizing raw payloads."""
        if self.metrics:
            self.metrics.record_adapter_outcome(spec.id, outcome, elapsed)

        if isinstance(outcome, AdapterFailure):
            if outcome.adapter_id != spec.id:
                outcome = outcome.model_copy(update={'adapter_id': spec.id})
            return Settlement(adapter_id=spec.id, failure=outcome)

        if isinstance(outcome, NarrativeResult):
            return Settlement(adapter_id=spec.id, text=outcome.text)

        if isinstance(outcome, RawAdapterResult):
            try:
                findings = self.normalizer.normalize(spec.id, outcome)
            except Exception as e:
                self.logger.error(f"Could not normalize {spec.id} output: {e}")
                return Settlement(
                    adapter_id=spec.id,
                    raw=outcome.payload,
                    failure=AdapterFailure(
                        adapter_id=spec.id,
                        reason=FailureReason.MALFORMED_OUTPUT,
                        message=f"Unrecognized {spec.id} output shape: {e}",
                    ),
                )
            self.logger.info(f"{spec.id} produced {len(findings)} findings")
            return Settlement(adapter_id=spec.id, findings=findings, raw=outcome.payload)

        return Settlement(
            adapter_id=spec.id,
            failure=AdapterFailure(
                adapter_id=spec.id,
                reason=FailureReason.INTERNAL_ERROR,
                message=f"Unexpected outcome type {type(outcome).__name__}",
            ),
        )

    def _narrative_id(self, specs: List[AdapterSpec]) -> Optional[str]:
        if self.narrative is not None:
            return self.narrative.id
        return next((s.id for s in specs if s.mandatory), None)

    def _guard_seconds(self, specs: List[AdapterSpec]) -> float:
        """Adapters run concurrently, so the slowest budget bounds the run."""
        longest = max((s.timeout_ms for s in specs), default=0)
        return longest / 1000 + self.run_timeout_margin_seconds
