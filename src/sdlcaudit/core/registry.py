"""Maps a declared language to the adapters that must run for it."""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List

from .models import AnalysisRequest, AdapterOutcome


logger = logging.getLogger(__name__)

# Wildcard entry in ``target_languages``: run for every language
ALL_LANGUAGES = "*"


class RegistryError(Exception):
    """Raised when an adapter cannot be registered."""
    pass


@dataclass(frozen=True)
class AdapterSpec:
    """A registered adapter: its id, languages, entry point and time budget."""

    id: str
    target_languages: FrozenSet[str]
    invoke: Callable[[AnalysisRequest], AdapterOutcome]
    timeout_ms: int
    mandatory: bool = False

    @property
    def is_universal(self) -> bool:
        return ALL_LANGUAGES in self.target_languages

    def applies_to(self, language: str) -> bool:
        return self.is_universal or language in self.target_languages


class AnalyzerRegistry:
    """Static adapter registry. Populated at startup, read-only afterwards."""

    def __init__(self) -> None:
        self._specs: Dict[str, AdapterSpec] = {}

    def register(self, spec: AdapterSpec) -> None:
        """Register an adapter, rejecting specs that could never run."""
        if not spec.id:
            raise RegistryError("Adapter id must not be empty")
        if not spec.target_languages:
            raise RegistryError(f"Adapter '{spec.id}' has no target languages")
        if spec.timeout_ms <= 0:
            raise RegistryError(f"Adapter '{spec.id}' must have a positive timeout")
        if spec.id in self._specs:
            raise RegistryError(f"Adapter '{spec.id}' is already registered")

        normalized = frozenset(lang.strip().lower() for lang in spec.target_languages)
        if normalized != spec.target_languages:
            spec = AdapterSpec(
                id=spec.id,
                target_languages=normalized,
                invoke=spec.invoke,
                timeout_ms=spec.timeout_ms,
                mandatory=spec.mandatory,
            )

        self._specs[spec.id] = spec
        logger.debug(f"Registered adapter {spec.id} for {sorted(spec.target_languages)}")

    def resolve(self, language: str) -> List[AdapterSpec]:
        """Adapters for ``language``: universal first, then specific, then mandatory.

        An unrecognized language is a valid degraded case and gets the
        universal and mandatory adapters only.
        """
        language = (language or "").strip().lower()
        specs = list(self._specs.values())

        universal = [s for s in specs if s.is_universal and not s.mandatory]
        specific = [s for s in specs if not s.is_universal and not s.mandatory and language in s.target_languages]
        mandatory = [s for s in specs if s.mandatory and s.applies_to(language)]

        return universal + specific + mandatory

    def get(self, adapter_id: str) -> AdapterSpec:
        return self._specs[adapter_id]

    def __contains__(self, adapter_id: str) -> bool:
        return adapter_id in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    @property
    def adapter_ids(self) -> List[str]:
        return list(self._specs)

    def languages(self) -> List[str]:
        """Every concrete language some adapter targets."""
        langs = set()
        for spec in self._specs.values():
            langs.update(lang for lang in spec.target_languages if lang != ALL_LANGUAGES)
        return sorted(langs)
