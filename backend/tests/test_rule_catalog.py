"""
Tests for the RuleCatalog.

Test Coverage:
1. Lookup by code and catalog order
2. Single lazy load under concurrent first access
3. Duplicate codes and unreadable sources
4. Display enrichment for known and unknown codes
"""
import threading

import pytest

from compliance_monitor.exceptions import PersistenceError
from compliance_monitor.models.domain import ImpactLevel
from compliance_monitor.services.catalog import RuleCatalog


def _rule(code, keywords=(), impact="low", category="Service performance monitoring"):
    return {
        "code": code,
        "pillar_id": 2,
        "pillar_name_en": "Service Performance and Customer Experience",
        "category_number": code.rsplit(".", 1)[0],
        "category_en": category,
        "description_en": f"Rule {code}",
        "requirements": [{"text_en": f"Requirement of {code}", "monitoring": "Monthly"}],
        "impact_level": impact,
        "keywords_en": list(keywords),
    }


class TestRuleCatalogLookup:
    """Keyed lookup over the packaged rulebook."""

    def test_get_known_code(self, catalog):
        rule = catalog.get("2.1.1")
        assert rule is not None
        assert rule.pillar_id == 2
        assert rule.impact_level == ImpactLevel.HIGH
        assert "queue" in rule.keywords
        assert rule.requirements

    def test_get_unknown_code_returns_none(self, catalog):
        assert catalog.get("9.9.9") is None

    def test_list_all_keeps_document_order(self, catalog):
        codes = [rule.code for rule in catalog.list_all()]
        assert codes[0] == "1.1.1"
        assert codes[-1] == "2.4.1"
        assert len(codes) == len(catalog) == 16

    def test_list_all_returns_copy(self, catalog):
        rules = catalog.list_all()
        rules.clear()
        assert len(catalog.list_all()) == 16


class TestRuleCatalogLoading:

    def test_loader_not_called_until_first_access(self):
        calls = []
        catalog = RuleCatalog(lambda: calls.append(1) or {"rules": [_rule("1.1.1")]})
        assert calls == []
        catalog.get("1.1.1")
        catalog.list_all()
        assert calls == [1]

    def test_concurrent_first_access_loads_once(self):
        calls = []
        gate = threading.Event()

        def loader():
            calls.append(1)
            gate.wait(timeout=1)
            return {"rules": [_rule("1.1.1"), _rule("1.2.1")]}

        catalog = RuleCatalog(loader)
        results = []
        threads = [
            threading.Thread(target=lambda: results.append(len(catalog.list_all())))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        gate.set()
        for thread in threads:
            thread.join()

        assert calls == [1]
        assert results == [2] * 8

    def test_duplicate_code_keeps_first(self):
        catalog = RuleCatalog.from_rules([
            _rule("1.1.1", keywords=["first"]),
            _rule("1.1.1", keywords=["second"]),
        ])
        assert len(catalog) == 1
        assert catalog.get("1.1.1").keywords == ("first",)

    def test_missing_source_raises_persistence_error(self, tmp_path):
        catalog = RuleCatalog.from_path(str(tmp_path / "missing.json"))
        with pytest.raises(PersistenceError):
            catalog.list_all()

    def test_malformed_source_raises_persistence_error(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError):
            RuleCatalog.from_path(str(path)).get("1.1.1")

    def test_null_lists_are_treated_as_empty(self):
        entry = _rule("1.1.1")
        entry["requirements"] = None
        entry["keywords_en"] = None
        rule = RuleCatalog.from_rules([entry]).get("1.1.1")
        assert rule.requirements == ()
        assert rule.keywords == ()

    def test_malformed_entry_raises_persistence_error(self):
        catalog = RuleCatalog.from_rules([{"pillar_id": 1, "description_en": "No code"}])
        with pytest.raises(PersistenceError):
            catalog.list_all()


class TestRuleCatalogEnrich:

    def test_enrich_known_code(self, catalog):
        enriched = catalog.enrich({"code": "2.1.1", "confidence": "high", "explanation": "x"})
        assert enriched["pillar"] == "Service Performance and Customer Experience"
        assert enriched["category"] == "Service performance monitoring"
        assert enriched["rule_description"]
        assert enriched["confidence"] == "high"

    def test_enrich_unknown_code_is_tolerated(self, catalog):
        enriched = catalog.enrich({"code": "7.7.7", "confidence": "low", "explanation": ""})
        assert enriched["pillar"] == "—"
        assert enriched["category"] == "—"
        assert enriched["rule_description"] == ""
