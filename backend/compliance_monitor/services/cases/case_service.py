"""
Case Lifecycle Service

Main orchestration for compliance cases.
Coordinates the state machine, deadline engine and case store, and
formats cases for reviewer and entity tooling.

ACTORS:
- REVIEWER: create (escalate), accept, reject, close
- ENTITY: submit evidence
- SYSTEM: penalty sweep on elapsed deadlines
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from ...clock import utcnow
from ...exceptions import NotFoundError, ValidationError
from ...models.codec import decode_strings, decode_violations, encode_strings
from ...models.db_models import CaseHistoryDB, ComplianceCaseDB, FeedbackDB
from ...models.domain import (
    CaseAction, HistoryEvent, HistoryEventType, Violation,
)
from ..catalog import RuleCatalog
from .case_store import CaseStore
from .deadline_engine import DeadlineEngine
from .state_machine import CaseStateMachine

logger = logging.getLogger(__name__)

DEFAULT_VIOLATION_SUMMARY = "Compliance violation detected by automated analysis"
DEFAULT_ACCEPT_NOTES = "Evidence accepted — case closed."

VERIFY_ACTIONS = {
    "accept": CaseAction.ACCEPT,
    "reject": CaseAction.REJECT,
}


def _require_text(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value)


def _to_violation(item: Union[Violation, Dict[str, Any]]) -> Violation:
    if isinstance(item, Violation):
        return item
    try:
        return Violation.from_dict(item)
    except (KeyError, TypeError, ValueError):
        raise ValidationError(f"Invalid violation entry: {item!r}")


class CaseLifecycle:
    """
    Drives a case from NOTIFIED to resolution.

    Every transition is validated against the state machine before any
    write, and applied through CaseStore as one atomic compare-and-swap.
    """

    def __init__(
        self,
        db_session: Session,
        catalog: RuleCatalog,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db_session
        self.catalog = catalog
        self.clock = clock
        self.store = CaseStore(db_session)
        self.state_machine = CaseStateMachine()
        self.deadline_engine = DeadlineEngine()

    # =========================================================================
    # CREATE (REVIEWER ESCALATION)
    # =========================================================================

    def create_case(
        self,
        feedback_id: int,
        violated_codes: List[Union[Violation, Dict[str, Any]]],
        violation_summary: Optional[str],
        notification_text: str,
        entity_name: str,
    ) -> Dict[str, Any]:
        """
        Open a case in NOTIFIED with deadline = now + 20 days.

        Raises:
            ValidationError: Missing notification text or entity
            NotFoundError: Unknown feedback id
            ConflictError: A case already exists for the feedback item
        """
        notification_text = _require_text(notification_text, "notification_text")
        entity_name = _require_text(entity_name, "entity_name")
        violations = [_to_violation(v) for v in (violated_codes or [])]

        if self.db.get(FeedbackDB, feedback_id) is None:
            raise NotFoundError(f"Feedback not found: {feedback_id}")

        now = self.clock()
        case = self.store.create(
            feedback_id=feedback_id,
            entity_name=entity_name,
            violated_codes=violations,
            violation_summary=(violation_summary or "").strip() or DEFAULT_VIOLATION_SUMMARY,
            notification_text=notification_text,
            notified_at=now,
            deadline=self.deadline_engine.calculate_deadline(now),
        )
        return {
            "success": True,
            "case_id": case.id,
            "case_number": case.case_number,
            "deadline": case.deadline.isoformat(),
        }

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def _transition(
        self,
        case_id: int,
        action: CaseAction,
        mutate: Callable[[ComplianceCaseDB, datetime], None],
        event_factory: Callable[[datetime], HistoryEvent],
    ) -> Dict[str, Any]:
        case = self.store.get_by_id(case_id)
        from_state = case.status
        new_state = self.state_machine.transition(from_state, action)
        now = self.clock()

        def apply(target: ComplianceCaseDB) -> None:
            target.status = new_state
            mutate(target, now)

        self.store.apply_transition(case, apply, event_factory(now))
        logger.info(f"Case {case.case_number}: {from_state.value} → {new_state.value} via {action.value}")
        return {"success": True, "case_id": case.id, "status": new_state.value}

    def submit_evidence(
        self,
        case_id: int,
        evidence_text: str,
        evidence_files: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Entity responds to the notice with evidence of compliance."""
        evidence_text = _require_text(evidence_text, "evidence_text")
        files = [str(f) for f in (evidence_files or [])]

        def mutate(case: ComplianceCaseDB, now: datetime) -> None:
            case.evidence_text = evidence_text
            case.evidence_files = encode_strings(files)
            case.evidence_submitted_at = now

        return self._transition(
            case_id,
            CaseAction.SUBMIT_EVIDENCE,
            mutate,
            lambda now: HistoryEvent(HistoryEventType.EVIDENCE_SUBMITTED, now, text=evidence_text, files=files),
        )

    def accept(self, case_id: int, notes: Optional[str] = None) -> Dict[str, Any]:
        """Reviewer accepts the evidence; the case closes as COMPLIANT."""
        notes = notes if notes and notes.strip() else DEFAULT_ACCEPT_NOTES

        def mutate(case: ComplianceCaseDB, now: datetime) -> None:
            case.reviewer_notes = notes
            case.resolved_at = now

        return self._transition(
            case_id,
            CaseAction.ACCEPT,
            mutate,
            lambda now: HistoryEvent(HistoryEventType.ACCEPTED, now, notes=notes),
        )

    def reject(self, case_id: int, notes: str) -> Dict[str, Any]:
        """
        Reviewer rejects the evidence.

        The case returns to NOTIFIED with a fresh deadline from now and the
        evidence fields cleared; history keeps the rejected round.
        """
        notes = _require_text(notes, "reviewer_notes")

        def mutate(case: ComplianceCaseDB, now: datetime) -> None:
            case.notified_at = now
            case.deadline = self.deadline_engine.calculate_deadline(now)
            case.evidence_text = None
            case.evidence_files = encode_strings([])
            case.evidence_submitted_at = None
            case.reviewer_notes = notes

        return self._transition(
            case_id,
            CaseAction.REJECT,
            mutate,
            lambda now: HistoryEvent(HistoryEventType.REJECTED, now, notes=notes),
        )

    def verify(self, case_id: int, action: str, notes: Optional[str] = None) -> Dict[str, Any]:
        """Dispatch a reviewer verification action ("accept" | "reject")."""
        case_action = VERIFY_ACTIONS.get(str(action or "").strip().lower())
        if case_action is None:
            raise ValidationError("action must be 'accept' or 'reject'")
        if case_action == CaseAction.ACCEPT:
            return self.accept(case_id, notes)
        return self.reject(case_id, notes)

    def apply_penalty(self, case_id: int, notes: str) -> Dict[str, Any]:
        """System: deadline elapsed while NOTIFIED."""

        def mutate(case: ComplianceCaseDB, now: datetime) -> None:
            case.reviewer_notes = notes

        return self._transition(
            case_id,
            CaseAction.APPLY_PENALTY,
            mutate,
            lambda now: HistoryEvent(HistoryEventType.PENALTY_APPLIED, now, notes=notes),
        )

    def close_non_compliant(self, case_id: int, notes: str) -> Dict[str, Any]:
        """Reviewer closes a penalised case as NON_COMPLIANT."""
        notes = _require_text(notes, "reviewer_notes")

        def mutate(case: ComplianceCaseDB, now: datetime) -> None:
            case.reviewer_notes = notes
            case.resolved_at = now

        return self._transition(
            case_id,
            CaseAction.CLOSE,
            mutate,
            lambda now: HistoryEvent(HistoryEventType.CLOSED_NON_COMPLIANT, now, notes=notes),
        )

    # =========================================================================
    # READS
    # =========================================================================

    def get_case(self, case_id: int) -> Dict[str, Any]:
        return self.format_case(self.store.get_by_id(case_id), detail=True)

    def list_cases(self, entity_name: Optional[str] = None) -> List[Dict[str, Any]]:
        cases = self.store.list_by_entity(entity_name) if entity_name else self.store.list_all()
        return [self.format_case(case) for case in cases]

    def format_history(self, rows: List[CaseHistoryDB]) -> List[Dict[str, Any]]:
        """History in event order; evidence events carry their round number."""
        history = []
        evidence_round = 0
        for row in rows:
            event = HistoryEvent(
                type=row.event_type,
                timestamp=row.timestamp,
                text=row.text,
                files=decode_strings(row.files, "history.files"),
                notes=row.notes,
            ).to_dict()
            if row.event_type == HistoryEventType.EVIDENCE_SUBMITTED:
                evidence_round += 1
                event["round"] = evidence_round
            history.append(event)
        return history

    def format_case(self, case: ComplianceCaseDB, detail: bool = False) -> Dict[str, Any]:
        """
        Serialize a case for reviewer/entity tooling.

        Violations are enriched from the live rule catalog, independent of
        the snapshot stored at escalation.
        """
        now = self.clock()
        violations = decode_violations(case.violated_codes, "violated_codes")
        feedback = case.feedback

        data = {
            "id": case.id,
            "case_number": case.case_number,
            "feedback_id": case.feedback_id,
            "entity": case.entity_name,
            "violated_codes": [self.catalog.enrich(v.to_dict()) for v in violations],
            "violation_summary": case.violation_summary,
            "status": case.status.value,
            "notified_at": case.notified_at.isoformat() if case.notified_at else None,
            "deadline": case.deadline.isoformat() if case.deadline else None,
            "days_remaining": self.deadline_engine.days_remaining(case.deadline, now)
            if not self.state_machine.is_terminal(case.status) else None,
            "overdue": self.deadline_engine.is_overdue(case.status, case.deadline, now),
            "evidence_text": case.evidence_text,
            "evidence_files": decode_strings(case.evidence_files, "evidence_files"),
            "evidence_submitted_at": case.evidence_submitted_at.isoformat()
            if case.evidence_submitted_at else None,
            "reviewer_notes": case.reviewer_notes,
            "resolved_at": case.resolved_at.isoformat() if case.resolved_at else None,
            "created_at": case.created_at.isoformat() if case.created_at else None,
            "complaint_text": feedback.complaint_text if feedback else None,
            "severity": feedback.ai_severity if feedback else None,
            "category": feedback.ai_category if feedback else None,
        }
        if detail:
            history = self.format_history(case.history)
            data.update({
                "notification_text": case.notification_text,
                "entity_ar": feedback.entity_name_ar if feedback else None,
                "service_center": feedback.channel if feedback else None,
                "feedback_date": feedback.submitted_at.isoformat()
                if feedback and feedback.submitted_at else None,
                "history": history,
                "evidence_rounds": sum(1 for e in history if e["type"] == HistoryEventType.EVIDENCE_SUBMITTED.value),
                "available_actions": [a.value for a in self.state_machine.get_available_actions(case.status)],
            })
        return data
