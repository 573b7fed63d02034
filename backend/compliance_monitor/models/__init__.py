"""Compliance Monitor - Data Models"""
from .domain import (
    # Enums
    ImpactLevel, Confidence, Severity, Sentiment, Category,
    CaseStatus, CaseAction, HistoryEventType, AnalysisMode,
    # Rulebook
    Requirement, Rule,
    # Matching
    Violation, Classification, MatchInput, ResolutionResult,
    # Case history
    HistoryEvent,
)

__all__ = [
    "ImpactLevel", "Confidence", "Severity", "Sentiment", "Category",
    "CaseStatus", "CaseAction", "HistoryEventType", "AnalysisMode",
    "Requirement", "Rule",
    "Violation", "Classification", "MatchInput", "ResolutionResult",
    "HistoryEvent",
]
