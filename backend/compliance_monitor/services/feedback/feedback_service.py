"""
Feedback Service

Submission, reviewer inbox and dismissal for feedback records.
Classification fields are owned by FeedbackAnalysisService.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...clock import utcnow
from ...exceptions import NotFoundError, PersistenceError, ValidationError
from ...models.codec import decode_strings, decode_violations, encode_strings, encode_violations
from ...models.db_models import FeedbackDB
from ...models.domain import CaseStatus, Severity
from ..catalog import RuleCatalog
from ..cases import CaseStore

logger = logging.getLogger(__name__)

SEVERITY_ORDER = {
    Severity.CRITICAL.value: 0,
    Severity.HIGH.value: 1,
    Severity.MEDIUM.value: 2,
    Severity.LOW.value: 3,
}

ACTIVE_CASE_STATUSES = (CaseStatus.NOTIFIED, CaseStatus.EVIDENCE_SUBMITTED, CaseStatus.PENALTY)


class FeedbackService:
    """Feedback records as seen by citizens and reviewers."""

    def __init__(
        self,
        db_session: Session,
        catalog: Optional[RuleCatalog] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db_session
        self.catalog = catalog
        self.clock = clock
        self.cases = CaseStore(db_session)

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Feedback {action} failed: {e}")
            raise PersistenceError(f"Failed to {action} feedback: {e}")

    def get(self, feedback_id: int) -> FeedbackDB:
        feedback = self.db.get(FeedbackDB, feedback_id)
        if feedback is None:
            raise NotFoundError(f"Feedback not found: {feedback_id}")
        return feedback

    # =========================================================================
    # WRITES
    # =========================================================================

    def submit(
        self,
        entity_name: str,
        channel: Optional[str] = None,
        feedback_type: Optional[str] = None,
        traits: Optional[List[str]] = None,
        dislike_comment: Optional[str] = None,
        general_comment: Optional[str] = None,
        entity_name_ar: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not entity_name or not entity_name.strip():
            raise ValidationError("entity_name is required")

        feedback = FeedbackDB(
            entity_name=entity_name.strip(),
            entity_name_ar=entity_name_ar,
            channel=channel,
            feedback_type=feedback_type or "complaint",
            traits=encode_strings(traits),
            dislike_comment=dislike_comment,
            general_comment=general_comment,
            submitted_at=self.clock(),
        )
        self.db.add(feedback)
        self._commit("submit")
        self.db.refresh(feedback)

        logger.info(f"Feedback {feedback.id} submitted for {feedback.entity_name}")
        return {"success": True, "feedback_id": feedback.id}

    def dismiss(self, feedback_id: int) -> Dict[str, Any]:
        """Remove an item from the inbox; the record itself is kept."""
        feedback = self.get(feedback_id)
        feedback.ai_code_violations = encode_violations([])
        feedback.dismissed_at = self.clock()
        self._commit("dismiss")

        logger.info(f"Feedback {feedback_id} dismissed from review queue")
        return {"success": True, "feedback_id": feedback_id}

    # =========================================================================
    # READS
    # =========================================================================

    def list_entities(self) -> List[str]:
        rows = self.db.query(FeedbackDB.entity_name).distinct().order_by(FeedbackDB.entity_name).all()
        return [row[0] for row in rows]

    def format_feedback(self, feedback: FeedbackDB) -> Dict[str, Any]:
        violations = [v.to_dict() for v in decode_violations(feedback.ai_code_violations, "ai_code_violations")]
        if self.catalog is not None:
            violations = [self.catalog.enrich(v) for v in violations]
        return {
            "id": feedback.id,
            "entity": feedback.entity_name,
            "entity_ar": feedback.entity_name_ar,
            "channel": feedback.channel,
            "feedback_type": feedback.feedback_type,
            "traits": decode_strings(feedback.traits, "traits"),
            "complaint_text": feedback.complaint_text,
            "submitted_at": feedback.submitted_at.isoformat() if feedback.submitted_at else None,
            "sentiment": feedback.ai_sentiment,
            "category": feedback.ai_category,
            "severity": feedback.ai_severity,
            "is_complaint": bool(feedback.ai_is_complaint),
            "summary": feedback.ai_summary,
            "violations": violations,
            "processed_at": feedback.processed_at.isoformat() if feedback.processed_at else None,
        }

    def _flagged(self) -> List[FeedbackDB]:
        escalated = self.cases.feedback_ids_with_cases()
        candidates = (
            self.db.query(FeedbackDB)
            .filter(
                FeedbackDB.ai_is_complaint.is_(True),
                FeedbackDB.dismissed_at.is_(None),
                FeedbackDB.processed_at.isnot(None),
            )
            .order_by(FeedbackDB.id)
            .all()
        )
        return [
            f for f in candidates
            if f.id not in escalated
            and decode_violations(f.ai_code_violations, "ai_code_violations")
        ]

    def inbox(self) -> List[Dict[str, Any]]:
        """Flagged feedback awaiting a reviewer decision, most severe first."""
        flagged = sorted(
            self._flagged(),
            key=lambda f: SEVERITY_ORDER.get(f.ai_severity, len(SEVERITY_ORDER)),
        )
        return [self.format_feedback(f) for f in flagged]

    def overview(self) -> Dict[str, int]:
        def count_cases(*statuses: CaseStatus) -> int:
            return sum(len(self.cases.list_by_status(status)) for status in statuses)

        return {
            "pending_reviews": len(self._flagged()),
            "active_cases": count_cases(*ACTIVE_CASE_STATUSES),
            "needs_verification": count_cases(CaseStatus.EVIDENCE_SUBMITTED),
            "penalty_cases": count_cases(CaseStatus.PENALTY),
            "total_cases": len(self.cases.list_all()),
        }
