"""Maps each adapter's native output shape onto the unified Finding record."""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from .models import Finding, RawAdapterResult, Severity


logger = logging.getLogger(__name__)

# ``path:line:`` at the start of a line, optionally followed by ``column:``
LOCATION_LINE = re.compile(r'^(?P<path>[^\s:][^:]*):(?P<line>\d+):(?:(?P<column>\d+):)?\s*(?P<rest>.*)$')

NormalizeFunc = Callable[[Any, "NormalizerEntry"], List[Finding]]


@dataclass(frozen=True)
class NormalizerEntry:
    """Per-adapter normalization: display name, fallback and severity vocabulary."""

    tool: str
    fallback: Severity
    severity_map: Dict[str, Severity]
    func: NormalizeFunc

    def severity(self, token: Any) -> Severity:
        """Translate a native severity token, falling back when it is unknown."""
        if token is None:
            return self.fallback
        key = str(token).strip().lower()
        if key in self.severity_map:
            return self.severity_map[key]
        return Severity.coerce(key, self.fallback)


def _get(data: Any, *path: Any, default: Any = None) -> Any:
    """Walk nested dicts/lists without raising on absent keys."""
    current = data
    for key in path:
        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, list) and isinstance(key, int):
            current = current[key] if -len(current) <= key < len(current) else None
        else:
            return default
        if current is None:
            return default
    return current


def _records(data: Any, key: str) -> List[dict]:
    items = _get(data, key, default=[])
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def _first(value: Any) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None or value == "":
        return None
    return str(value)


def normalize_semgrep(payload: Any, entry: NormalizerEntry) -> List[Finding]:
    findings = []
    for result in _records(payload, 'results'):
        extra = result.get('extra') or {}
        metadata = extra.get('metadata') or {}
        findings.append(Finding(
            tool=entry.tool,
            severity=entry.severity(extra.get('severity')),
            line=_get(result, 'start', 'line'),
            message=extra.get('message') or result.get('check_id') or "Security issue detected",
            code=_first(metadata.get('cwe')) or result.get('check_id'),
            reference=_first(metadata.get('references')),
        ))
    return findings


def normalize_bandit(payload: Any, entry: NormalizerEntry) -> List[Finding]:
    findings = []
    for result in _records(payload, 'results'):
        cwe_id = _get(result, 'issue_cwe', 'id')
        findings.append(Finding(
            tool=entry.tool,
            severity=entry.severity(result.get('issue_severity')),
            line=result.get('line_number'),
            message=result.get('issue_text') or "Security issue detected",
            code=f"CWE-{cwe_id}" if cwe_id else result.get('test_id'),
            reference=result.get('more_info'),
        ))
    return findings


def normalize_eslint(payload: Any, entry: NormalizerEntry) -> List[Finding]:
    files = payload if isinstance(payload, list) else [payload]
    findings = []
    for file_result in files:
        for message in _records(file_result, 'messages'):
            findings.append(Finding(
                tool=entry.tool,
                severity=entry.severity(message.get('severity')),
                line=message.get('line'),
                message=message.get('message') or "Code quality issue",
                code=message.get('ruleId'),
            ))
    return findings


def normalize_pmd(payload: Any, entry: NormalizerEntry) -> List[Finding]:
    findings = []
    for file_result in _records(payload, 'files'):
        for violation in _records(file_result, 'violations'):
            findings.append(Finding(
                tool=entry.tool,
                severity=entry.severity(violation.get('priority')),
                line=violation.get('beginline'),
                message=violation.get('description') or "Rule violation",
                code=violation.get('rule'),
                reference=violation.get('externalInfoUrl'),
            ))
    return findings


def scan_location_lines(text: str) -> Iterable[re.Match]:
    """Yield one match per ``path:line:`` line of a text report."""
    for raw_line in (text or "").splitlines():
        match = LOCATION_LINE.match(raw_line.strip())
        if match:
            yield match


CPPCHECK_DETAIL = re.compile(r'^(?P<severity>[a-zA-Z]+):\s*(?P<message>.*?)(?:\s*\[(?P<id>[\w.\-]+)\])?$')
# Whole-run notes such as the checkers report are not tied to the source
CPPCHECK_NO_FILE = "nofile"


def normalize_cppcheck(payload: Any, entry: NormalizerEntry) -> List[Finding]:
    findings = []
    for match in scan_location_lines(payload if isinstance(payload, str) else ""):
        if match.group('path') == CPPCHECK_NO_FILE:
            continue
        rest = match.group('rest')
        detail = CPPCHECK_DETAIL.match(rest)
        if detail and detail.group('severity').lower() in entry.severity_map:
            severity = entry.severity(detail.group('severity'))
            message = detail.group('message') or rest
            code = detail.group('id')
        else:
            severity, message, code = entry.fallback, rest, None
        findings.append(Finding(
            tool=entry.tool,
            severity=severity,
            line=int(match.group('line')) or None,
            message=message or "Issue reported",
            code=code,
        ))
    return findings


FLAWFINDER_DETAIL = re.compile(r'^\[(?P<level>\d)\]\s*(?:\((?P<category>[^)]*)\)\s*)?(?P<message>.*)$')
CWE_REF = re.compile(r'\b(CWE-\d+)')


def normalize_flawfinder(payload: Any, entry: NormalizerEntry) -> List[Finding]:
    findings = []
    for match in scan_location_lines(payload if isinstance(payload, str) else ""):
        rest = match.group('rest')
        detail = FLAWFINDER_DETAIL.match(rest)
        if detail:
            severity = entry.severity(detail.group('level'))
            message = detail.group('message')
            cwe = CWE_REF.search(message)
            code = cwe.group(1) if cwe else detail.group('category')
        else:
            severity, message, code = entry.fallback, rest, None
        findings.append(Finding(
            tool=entry.tool,
            severity=severity,
            line=match.group('line'),
            message=message or "Potential security flaw",
            code=code,
        ))
    return findings


def normalize_generic(payload: Any, entry: NormalizerEntry) -> List[Finding]:
    """Best effort for adapters without a dedicated mapping."""
    if isinstance(payload, str):
        return [
            Finding(tool=entry.tool, severity=entry.fallback, line=m.group('line'),
                    message=m.group('rest') or "Issue reported")
            for m in scan_location_lines(payload)
        ]

    records = payload if isinstance(payload, list) else _records(payload, 'results') or _records(payload, 'findings')
    findings = []
    for record in records:
        if not isinstance(record, dict):
            continue
        findings.append(Finding(
            tool=entry.tool,
            severity=entry.severity(record.get('severity')),
            line=record.get('line'),
            message=record.get('message') or "Issue reported",
            code=record.get('code') or record.get('rule'),
            reference=record.get('reference'),
        ))
    return findings


SEMGREP_SEVERITIES = {
    'error': Severity.HIGH,
    'warning': Severity.WARNING,
    'info': Severity.INFO,
    'inventory': Severity.INFO,
    'experiment': Severity.INFO,
}

BANDIT_SEVERITIES = {
    'high': Severity.HIGH,
    'medium': Severity.MEDIUM,
    'low': Severity.LOW,
    'undefined': Severity.MEDIUM,
}

ESLINT_SEVERITIES = {
    '2': Severity.HIGH,
    '1': Severity.WARNING,
    '0': Severity.INFO,
}

CPPCHECK_SEVERITIES = {
    'error': Severity.HIGH,
    'warning': Severity.WARNING,
    'style': Severity.LOW,
    'performance': Severity.LOW,
    'portability': Severity.LOW,
    'information': Severity.INFO,
}

FLAWFINDER_SEVERITIES = {
    '5': Severity.CRITICAL,
    '4': Severity.HIGH,
    '3': Severity.MEDIUM,
    '2': Severity.LOW,
    '1': Severity.INFO,
    '0': Severity.INFO,
}

PMD_SEVERITIES = {
    '1': Severity.CRITICAL,
    '2': Severity.HIGH,
    '3': Severity.MEDIUM,
    '4': Severity.LOW,
    '5': Severity.INFO,
}


class FindingNormalizer:
    """Dispatch table of per-adapter normalization functions."""

    def __init__(self) -> None:
        self._entries: Dict[str, NormalizerEntry] = {}

    def register(self,
                 adapter_id: str,
                 func: NormalizeFunc,
                 fallback: Severity,
                 severity_map: Optional[Dict[str, Severity]] = None,
                 tool: Optional[str] = None) -> None:
        self._entries[adapter_id] = NormalizerEntry(
            tool=tool or adapter_id,
            fallback=fallback,
            severity_map={k.lower(): v for k, v in (severity_map or {}).items()},
            func=func,
        )

    def entry_for(self, adapter_id: str) -> NormalizerEntry:
        entry = self._entries.get(adapter_id)
        if entry is None:
            entry = NormalizerEntry(tool=adapter_id, fallback=Severity.INFO, severity_map={}, func=normalize_generic)
        return entry

    def normalize(self, adapter_id: str, raw: RawAdapterResult) -> List[Finding]:
        """Normalize one adapter's raw result into unified findings."""
        entry = self.entry_for(adapter_id)
        findings = entry.func(raw.payload, entry)
        logger.debug(f"Normalized {len(findings)} findings from {adapter_id}")
        return findings

    def __contains__(self, adapter_id: str) -> bool:
        return adapter_id in self._entries


def build_default_normalizer() -> FindingNormalizer:
    """Normalizer with a mapping for every built-in adapter."""
    normalizer = FindingNormalizer()
    normalizer.register('semgrep', normalize_semgrep, Severity.INFO, SEMGREP_SEVERITIES, tool="Semgrep")
    normalizer.register('bandit', normalize_bandit, Severity.MEDIUM, BANDIT_SEVERITIES, tool="Bandit")
    normalizer.register('eslint', normalize_eslint, Severity.WARNING, ESLINT_SEVERITIES, tool="ESLint")
    normalizer.register('cppcheck', normalize_cppcheck, Severity.WARNING, CPPCHECK_SEVERITIES, tool="Cppcheck")
    normalizer.register('flawfinder', normalize_flawfinder, Severity.MEDIUM, FLAWFINDER_SEVERITIES, tool="Flawfinder")
    normalizer.register('pmd', normalize_pmd, Severity.MEDIUM, PMD_SEVERITIES, tool="PMD")
    return normalizer
