"""Metrics collection for orchestration runs."""

import logging
import threading
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from prometheus_client import Counter, Histogram

from ..core.models import AdapterFailure, Finding


logger = logging.getLogger(__name__)


# Prometheus metrics
ADAPTER_RUNS = Counter(
    'adapter_runs_total',
    'Adapter invocations by outcome',
    ['adapter', 'outcome']
)

ADAPTER_DURATION = Histogram(
    'adapter_duration_seconds',
    'Wall-clock time spent in each adapter',
    ['adapter']
)

FINDINGS = Counter(
    'findings_total',
    'Normalized findings by tool and severity',
    ['tool', 'severity']
)

ANALYSIS_RUNS = Counter(
    'analysis_runs_total',
    'Orchestration runs by declared language',
    ['language']
)

GENERATION_REQUESTS = Counter(
    'generation_requests_total',
    'Threat-model, fix and report generations by template',
    ['template', 'outcome']
)


class MetricsCollector:
    """Records orchestration metrics and keeps an in-process summary."""

    def __init__(self):
        self.start_time = datetime.utcnow()

        # Internal counters
        self._analysis_counts: Dict[str, int] = {}
        self._adapter_outcomes: Dict[str, Dict[str, int]] = {}
        self._timing_data: Dict[str, List[float]] = {}
        self._generation_counts: Dict[str, int] = {}

        # Thread safety
        self._lock = threading.RLock()

    def record_analysis(self, language: str) -> None:
        ANALYSIS_RUNS.labels(language=language).inc()

        with self._lock:
            self._analysis_counts[language] = self._analysis_counts.get(language, 0) + 1

    def record_adapter_outcome(self, adapter_id: str, outcome: Any, duration_seconds: Optional[float]) -> None:
        """Record one settled adapter: ``ok`` or its failure reason."""
        if isinstance(outcome, AdapterFailure):
            label = outcome.reason.value
        else:
            label = "ok"

        ADAPTER_RUNS.labels(adapter=adapter_id, outcome=label).inc()
        if duration_seconds is not None:
            ADAPTER_DURATION.labels(adapter=adapter_id).observe(duration_seconds)

        with self._lock:
            outcomes = self._adapter_outcomes.setdefault(adapter_id, {})
            outcomes[label] = outcomes.get(label, 0) + 1
            if duration_seconds is not None:
                self._timing_data.setdefault(adapter_id, []).append(duration_seconds)

    def record_findings(self, findings: Iterable[Finding]) -> None:
        for finding in findings:
            FINDINGS.labels(tool=finding.tool, severity=finding.severity.value).inc()

    def record_generation(self, template: str, ok: bool) -> None:
        outcome = "ok" if ok else "failed"
        GENERATION_REQUESTS.labels(template=template, outcome=outcome).inc()

        with self._lock:
            key = f"{template}_{outcome}"
            self._generation_counts[key] = self._generation_counts.get(key, 0) + 1

    def get_summary_stats(self) -> Dict[str, Any]:
        """Get summary statistics."""
        with self._lock:
            uptime = datetime.utcnow() - self.start_time

            return {
                "uptime_seconds": uptime.total_seconds(),
                "total_analyses": sum(self._analysis_counts.values()),
                "analysis_counts": dict(self._analysis_counts),
                "adapter_outcomes": {k: dict(v) for k, v in self._adapter_outcomes.items()},
                "generation_counts": dict(self._generation_counts),
                "average_adapter_seconds": {
                    key: sum(times) / len(times) if times else 0
                    for key, times in self._timing_data.items()
                }
            }

    def reset_metrics(self) -> None:
        """Reset internal metrics (not Prometheus metrics)."""
        with self._lock:
            self._analysis_counts.clear()
            self._adapter_outcomes.clear()
            self._timing_data.clear()
            self._generation_counts.clear()
            self.start_time = datetime.utcnow()
