"""Assembles the final report from a terminal run state."""

import logging
from typing import Optional

from .models import AnalysisReport
from .state import RunState, RunStateError


logger = logging.getLogger(__name__)


class ReportComposer:
    """Merges normalized findings, narrative text and failure notices."""

    def compose(self, state: RunState, duration_seconds: Optional[float] = None) -> AnalysisReport:
        if not state.is_terminal:
            raise RunStateError(f"Cannot compose report while {sorted(state.pending)} are pending")

        report = AnalysisReport(
            language=state.request.language,
            tools_run=list(state.completed),
            duration_seconds=duration_seconds,
        )

        for adapter_id, settlement in state.completed.items():
            if settlement.failure is not None:
                report.partial_failures.append(settlement.failure)
            else:
                report.findings.extend(settlement.findings)

            if adapter_id == state.narrative_id:
                if settlement.failure is not None:
                    # The explanation takes the place of the review text
                    report.narrative = settlement.failure.message
                else:
                    report.narrative = settlement.text
            elif settlement.raw is not None:
                report.raw_results[adapter_id] = settlement.raw

        logger.info(
            f"Composed report: {len(report.findings)} findings, "
            f"{len(report.partial_failures)} partial failures"
        )
        return report
