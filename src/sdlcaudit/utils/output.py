"""Output formatting utilities."""

import json
from typing import List
from datetime import datetime

from ..core.models import AnalysisReport, Finding, OutputFormat, Severity
from ..core.config import OutputConfig


# Display order, least to most severe
SEVERITY_ORDER = [
    Severity.INFO,
    Severity.LOW,
    Severity.WARNING,
    Severity.MEDIUM,
    Severity.HIGH,
    Severity.CRITICAL,
]


def sort_findings(findings: List[Finding]) -> List[Finding]:
    """Most severe first, then by line."""
    return sorted(
        findings,
        key=lambda f: (-SEVERITY_ORDER.index(f.severity), f.line if f.line is not None else -1),
    )


class OutputFormatter:
    """Formats analysis reports for different output formats."""

    def __init__(self, config: OutputConfig):
        self.config = config

    def format_report(self, report: AnalysisReport) -> str:
        """Format an analysis report according to configuration."""
        if self.config.format == OutputFormat.JSON:
            return self._format_json(report)
        elif self.config.format == OutputFormat.MARKDOWN:
            return self._format_markdown(report)
        else:  # Default to table
            return self._format_table(report)

    def _format_table(self, report: AnalysisReport) -> str:
        """Format as a human-readable table."""
        output = []

        # Header
        output.append("SDLC Auditor Analysis Results")
        output.append("=" * 50)
        output.append("")

        # Summary
        duration_str = f"{report.duration_seconds:.2f}" if report.duration_seconds is not None else "Unknown"
        output.append(f"Language: {report.language}")
        output.append(f"Analysis completed in {duration_str} seconds")
        output.append(f"Tools run: {', '.join(report.tools_run) or 'none'}")
        output.append(f"Total findings: {len(report.findings)}")
        output.append("")

        if report.findings:
            output.append("Findings by Severity:")
            for severity in reversed(SEVERITY_ORDER):
                count = report.findings_by_severity().get(severity)
                if count:
                    output.append(f"  {severity.value.capitalize()}: {count}")
            output.append("")

            output.append("Findings by Tool:")
            for tool, count in report.findings_by_tool().items():
                output.append(f"  {tool}: {count}")
            output.append("")

            output.append("Detailed Findings:")
            output.append("-" * 20)

            for i, finding in enumerate(sort_findings(report.findings), 1):
                output.append(f"\n{i}. [{finding.tool}] {finding.message}")
                output.append(f"   Severity: {finding.severity.value}")
                output.append(f"   Line: {finding.line if finding.line is not None else 'N/A'}")
                if finding.code:
                    output.append(f"   Code: {finding.code}")
                if finding.reference:
                    output.append(f"   Reference: {finding.reference}")
        else:
            output.append("No security issues found by the static analyzers.")

        if report.partial_failures:
            output.append("")
            output.append("Partial Failures:")
            for failure in report.partial_failures:
                output.append(f"  {failure.describe()}")

        if report.narrative:
            output.append("")
            output.append("AI Review:")
            output.append("-" * 20)
            output.append(report.narrative)

        return "\n".join(output)

    def _format_json(self, report: AnalysisReport) -> str:
        """Format as JSON."""
        exclude = None if self.config.include_raw else {'raw_results'}
        data = report.model_dump(mode='json', exclude=exclude)
        return json.dumps(data, indent=2, default=str)

    def _format_markdown(self, report: AnalysisReport) -> str:
        """Format as Markdown."""
        output = []

        # Header
        output.append("# SDLC Auditor Security Report")
        output.append("")
        output.append(f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        output.append(f"**Language:** {report.language}")
        output.append(f"**Analysis Time:** {report.duration_seconds:.2f} seconds" if report.duration_seconds is not None else "**Analysis Time:** Unknown")
        output.append(f"**Total Findings:** {len(report.findings)}")
        output.append("")

        if report.findings:
            output.append("## Summary")
            output.append("")
            output.append("| Severity | Count |")
            output.append("|----------|-------|")
            counts = report.findings_by_severity()
            for severity in reversed(SEVERITY_ORDER):
                if counts.get(severity):
                    output.append(f"| {severity.value.capitalize()} | {counts[severity]} |")
            output.append("")

            output.append("## Findings")
            output.append("")
            output.append("| # | Tool | Severity | Line | Message | Code |")
            output.append("|---|------|----------|------|---------|------|")
            for i, finding in enumerate(sort_findings(report.findings), 1):
                message = finding.message.replace("|", "\\|").replace("\n", " ")
                line = finding.line if finding.line is not None else "N/A"
                output.append(
                    f"| {i} | {finding.tool} | {finding.severity.value} | {line} | {message} | {finding.code or ''} |"
                )
            output.append("")
        else:
            output.append("## Results")
            output.append("")
            output.append("No security issues found by the static analyzers.")
            output.append("")

        if report.partial_failures:
            output.append("## Partial Failures")
            output.append("")
            for failure in report.partial_failures:
                output.append(f"- `{failure.adapter_id}`: {failure.reason.value} {failure.message}".rstrip())
            output.append("")

        if report.narrative:
            output.append("## AI Review")
            output.append("")
            output.append(report.narrative)

        return "\n".join(output)
