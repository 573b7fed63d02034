"""
Rule Catalog

Read-only registry of compliance rules keyed by rule code.
Built once at startup and passed to the components that need it.
The source document is read lazily on first access; concurrent first
callers share a single load.
"""
import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ...models.domain import Rule
from ...exceptions import PersistenceError

logger = logging.getLogger(__name__)


def load_rules_document(path: str) -> Dict[str, Any]:
    """Read the rulebook JSON document from disk."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return json.load(handle)
    except (OSError, ValueError) as e:
        raise PersistenceError(f"Cannot load rule catalog from {path}: {e}")


class RuleCatalog:
    """
    Immutable rulebook lookup.

    Rules keep the order of the source document; that order is the
    tie-break used by the relevance ranker.
    """

    def __init__(self, loader: Callable[[], Dict[str, Any]]):
        self._loader = loader
        self._lock = threading.Lock()
        self._rules: Optional[List[Rule]] = None
        self._by_code: Optional[Dict[str, Rule]] = None

    @classmethod
    def from_path(cls, path: str) -> "RuleCatalog":
        return cls(lambda: load_rules_document(str(Path(path))))

    @classmethod
    def from_rules(cls, rules: List[Dict[str, Any]]) -> "RuleCatalog":
        """Catalog over an in-memory document (tests, fixtures)."""
        return cls(lambda: {"rules": rules})

    def _ensure_loaded(self) -> None:
        if self._by_code is not None:
            return
        with self._lock:
            if self._by_code is not None:
                return
            document = self._loader()
            try:
                rules = [Rule.from_source(entry) for entry in document.get("rules") or []]
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise PersistenceError(f"Malformed rule catalog entry: {e!r}")
            by_code: Dict[str, Rule] = {}
            for rule in rules:
                if rule.code in by_code:
                    logger.warning(f"Duplicate rule code {rule.code} in catalog, keeping first")
                    continue
                by_code[rule.code] = rule
            self._rules = [by_code[code] for code in by_code]
            # Publish last: readers check _by_code without the lock
            self._by_code = by_code
            logger.info(f"Rule catalog loaded: {len(self._rules)} rules")

    def get(self, code: str) -> Optional[Rule]:
        self._ensure_loaded()
        return self._by_code.get(code)

    def list_all(self) -> List[Rule]:
        self._ensure_loaded()
        return list(self._rules)

    def __len__(self) -> int:
        self._ensure_loaded()
        return len(self._rules)

    def enrich(self, violation: Dict[str, Any]) -> Dict[str, Any]:
        """
        Attach live rulebook context to a stored violation.
        Codes missing from the catalog are tolerated for display.
        """
        rule = self.get(violation.get("code", ""))
        return {
            **violation,
            "pillar": rule.pillar_name if rule else "—",
            "category": rule.category if rule else "—",
            "rule_description": rule.description if rule else "",
        }
