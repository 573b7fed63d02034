"""
Compliance Monitor - Domain Models

Plain data structures shared by the matching pipeline and the case
lifecycle. Rules are immutable once loaded; violations and classifications
are value objects produced once per analysis.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# =============================================================================
# ENUMS
# =============================================================================

class ImpactLevel(str, Enum):
    LOW = "low"
    HIGH = "high"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class Category(str, Enum):
    """Complaint categories produced by the classification step."""
    SERVICE_QUALITY = "service_quality"
    EMPLOYEE_CONDUCT = "employee_conduct"
    PROCESS_COMPLEXITY = "process_complexity"
    ACCESSIBILITY = "accessibility"
    WAITING_TIME = "waiting_time"
    COMMUNICATION = "communication"
    FEES = "fees"
    DIGITAL_EXPERIENCE = "digital_experience"
    INFORMATION_CLARITY = "information_clarity"
    COMPLAINT_HANDLING = "complaint_handling"
    OTHER = "other"


class CaseStatus(str, Enum):
    """States of a compliance case. A case does not exist before NOTIFIED."""
    NOTIFIED = "notified"
    EVIDENCE_SUBMITTED = "evidence_submitted"
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"
    PENALTY = "penalty"


class CaseAction(str, Enum):
    SUBMIT_EVIDENCE = "submit_evidence"
    ACCEPT = "accept"
    REJECT = "reject"
    APPLY_PENALTY = "apply_penalty"
    CLOSE = "close"


class HistoryEventType(str, Enum):
    EVIDENCE_SUBMITTED = "evidence_submitted"
    REJECTED = "rejected"
    ACCEPTED = "accepted"
    PENALTY_APPLIED = "penalty_applied"
    CLOSED_NON_COMPLIANT = "closed_non_compliant"


class AnalysisMode(str, Enum):
    LIVE = "live"
    MOCK = "mock"


# =============================================================================
# RULEBOOK
# =============================================================================

@dataclass(frozen=True)
class Requirement:
    text: str
    monitoring: str = ""


@dataclass(frozen=True)
class Rule:
    """One compliance requirement from the rulebook, keyed by its dotted code."""
    code: str
    pillar_id: int
    pillar_name: str
    category_number: str
    category: str
    description: str
    description_ar: str = ""
    requirements: Tuple[Requirement, ...] = ()
    impact_level: ImpactLevel = ImpactLevel.LOW
    keywords: Tuple[str, ...] = ()

    @classmethod
    def from_source(cls, data: Dict[str, Any]) -> "Rule":
        """Build a Rule from one entry of the rulebook document."""
        impact = str(data.get("impact_level", "low")).lower()
        return cls(
            code=str(data["code"]),
            pillar_id=int(data.get("pillar_id", 0)),
            pillar_name=data.get("pillar_name_en", ""),
            category_number=str(data.get("category_number", "")),
            category=data.get("category_en", ""),
            description=data.get("description_en", ""),
            description_ar=data.get("description_ar", ""),
            requirements=tuple(
                Requirement(text=req.get("text_en", ""), monitoring=req.get("monitoring", ""))
                for req in data.get("requirements") or []
            ),
            impact_level=ImpactLevel.HIGH if impact == "high" else ImpactLevel.LOW,
            keywords=tuple(data.get("keywords_en") or []),
        )

    def to_candidate(self) -> Dict[str, Any]:
        """Shape offered to the external judge."""
        return {
            "code": self.code,
            "category": self.category,
            "description": self.description,
            "impact": self.impact_level.value,
            "requirements": [req.text for req in self.requirements],
        }


# =============================================================================
# MATCHING
# =============================================================================

@dataclass
class Violation:
    code: str
    confidence: Confidence
    explanation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "confidence": self.confidence.value,
            "explanation": self.explanation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Violation":
        return cls(
            code=str(data["code"]),
            confidence=Confidence(data["confidence"]),
            explanation=str(data.get("explanation", "")),
        )


@dataclass
class Classification:
    sentiment: Sentiment
    is_complaint: bool
    severity: Severity
    category: Category
    summary: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sentiment": self.sentiment.value,
            "is_complaint": self.is_complaint,
            "severity": self.severity.value,
            "category": self.category.value,
            "summary": self.summary,
        }


@dataclass
class MatchInput:
    """Complaint context handed to the ranker and resolver."""
    complaint_text: str
    entity: str
    category: str
    severity: str
    channel: Optional[str] = None
    traits: List[str] = field(default_factory=list)
    feedback_id: Optional[int] = None


@dataclass
class ResolutionResult:
    violations: List[Violation]
    dropped_codes: List[str] = field(default_factory=list)
    mode: AnalysisMode = AnalysisMode.MOCK


# =============================================================================
# CASE HISTORY
# =============================================================================

@dataclass
class HistoryEvent:
    """One entry in a case's append-only audit trail."""
    type: HistoryEventType
    timestamp: datetime
    text: Optional[str] = None
    files: List[str] = field(default_factory=list)
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.type == HistoryEventType.EVIDENCE_SUBMITTED:
            data["text"] = self.text
            data["files"] = list(self.files)
        else:
            data["notes"] = self.notes
        return data
