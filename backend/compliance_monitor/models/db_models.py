"""
Compliance Monitor - SQLAlchemy ORM Models
Persistent storage for feedback, compliance cases and their audit trail
"""
from datetime import datetime
from sqlalchemy import (
    Column, String, Integer, DateTime, Text, JSON, ForeignKey, Boolean,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import Base
from .domain import CaseStatus, HistoryEventType


class FeedbackDB(Base):
    """
    A citizen feedback submission.
    Classification fields are written once by the analysis pipeline.
    """
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Submission
    entity_name = Column(String(255), nullable=False, index=True)
    entity_name_ar = Column(String(255), nullable=True)
    channel = Column(String(255), nullable=True)  # Service center or digital channel
    feedback_type = Column(String(50), default="complaint")
    traits = Column(JSON, nullable=True)  # Versioned envelope of dislike trait labels
    dislike_comment = Column(Text, nullable=True)
    general_comment = Column(Text, nullable=True)
    submitted_at = Column(DateTime, default=datetime.utcnow)

    # Classification (written once)
    ai_sentiment = Column(String(20), nullable=True)
    ai_category = Column(String(50), nullable=True)
    ai_is_complaint = Column(Boolean, default=False)
    ai_severity = Column(String(20), nullable=True)
    ai_summary = Column(Text, nullable=True)
    ai_code_violations = Column(JSON, nullable=True)  # Versioned envelope of Violation dicts
    processed_at = Column(DateTime, nullable=True)

    # Reviewer dismissal removes the item from the inbox without deleting it
    dismissed_at = Column(DateTime, nullable=True)

    # Relationships
    compliance_case = relationship("ComplianceCaseDB", back_populates="feedback", uselist=False)

    @property
    def complaint_text(self) -> str:
        return self.dislike_comment or self.general_comment or ""


class ComplianceCaseDB(Base):
    """
    Formal investigation opened against an entity for one feedback item.
    Mutated only through lifecycle transitions; never deleted.
    """
    __tablename__ = "compliance_cases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    case_number = Column(String(32), unique=True, nullable=False, index=True)  # CE-<year>-<seq>
    feedback_id = Column(Integer, ForeignKey("feedback.id"), unique=True, nullable=False)
    entity_name = Column(String(255), nullable=False, index=True)

    # Snapshot of violations at escalation time (versioned envelope)
    violated_codes = Column(JSON, nullable=False)
    violation_summary = Column(Text, nullable=False)
    notification_text = Column(Text, nullable=True)

    # State Machine
    status = Column(SQLEnum(CaseStatus), nullable=False, default=CaseStatus.NOTIFIED, index=True)
    notified_at = Column(DateTime, nullable=False)
    deadline = Column(DateTime, nullable=False)

    # Current evidence round
    evidence_text = Column(Text, nullable=True)
    evidence_files = Column(JSON, nullable=True)  # Versioned envelope of file references
    evidence_submitted_at = Column(DateTime, nullable=True)

    reviewer_notes = Column(Text, nullable=True)
    resolved_at = Column(DateTime, nullable=True)

    # Compare-and-swap token for transitions
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    feedback = relationship("FeedbackDB", back_populates="compliance_case")
    history = relationship(
        "CaseHistoryDB",
        back_populates="compliance_case",
        order_by="CaseHistoryDB.sequence",
        cascade="save-update, merge",
    )

    __mapper_args__ = {"version_id_col": version}


class CaseHistoryDB(Base):
    """
    Append-only audit trail of case events.
    Rows are inserted with a per-case sequence and never updated.
    """
    __tablename__ = "case_history"
    __table_args__ = (
        UniqueConstraint("case_id", "sequence", name="uq_case_history_sequence"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    case_id = Column(Integer, ForeignKey("compliance_cases.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)

    event_type = Column(SQLEnum(HistoryEventType), nullable=False)
    timestamp = Column(DateTime, nullable=False)

    # evidence_submitted payload
    text = Column(Text, nullable=True)
    files = Column(JSON, nullable=True)  # Versioned envelope
    # rejected / accepted / penalty_applied / closed_non_compliant payload
    notes = Column(Text, nullable=True)

    # Relationships
    compliance_case = relationship("ComplianceCaseDB", back_populates="history")


class CaseNumberSequenceDB(Base):
    """
    Atomic per-year counter backing case number assignment.
    Incremented with a single UPDATE inside the creating transaction.
    """
    __tablename__ = "case_number_sequences"

    year = Column(Integer, primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)
