"""Rulebook access"""
from .rule_catalog import RuleCatalog, load_rules_document

__all__ = ["RuleCatalog", "load_rules_document"]
