"""Per-request run state for an orchestration run."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from .models import AnalysisRequest, AdapterFailure, Finding
from .registry import AdapterSpec


class RunStateError(Exception):
    """Raised when a run state transition is not allowed."""
    pass


@dataclass
class Settlement:
    """What one adapter ended with."""

    adapter_id: str
    findings: List[Finding] = field(default_factory=list)
    failure: Optional[AdapterFailure] = None
    raw: Any = None
    text: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class RunState:
    """Per-request bookkeeping. ``pending`` only ever shrinks."""

    request: AnalysisRequest
    pending: Set[str]
    completed: Dict[str, Settlement] = field(default_factory=dict)
    narrative_id: Optional[str] = None

    @classmethod
    def start(cls, request: AnalysisRequest, specs: List[AdapterSpec],
              narrative_id: Optional[str] = None) -> "RunState":
        return cls(request=request, pending={s.id for s in specs}, narrative_id=narrative_id)

    def settle(self, settlement: Settlement) -> None:
        if settlement.adapter_id not in self.pending:
            raise RunStateError(f"Adapter '{settlement.adapter_id}' is not pending")
        self.pending.discard(settlement.adapter_id)
        self.completed[settlement.adapter_id] = settlement

    @property
    def is_terminal(self) -> bool:
        return not self.pending
