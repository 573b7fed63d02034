"""
Case Store

Persistence for compliance cases. Guarantees:
- at most one case per feedback item (UNIQUE feedback_id)
- collision-free case numbers from an atomic per-year counter
- every transition commits status, evidence fields and its history row
  together, as a compare-and-swap on the case version
"""
import logging
from datetime import datetime
from typing import Callable, List

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...exceptions import ConflictError, NotFoundError, PersistenceError
from ...models.codec import encode_strings, encode_violations
from ...models.db_models import CaseHistoryDB, CaseNumberSequenceDB, ComplianceCaseDB
from ...models.domain import CaseStatus, HistoryEvent, Violation

logger = logging.getLogger(__name__)

CASE_NUMBER_PREFIX = "CE"


def format_case_number(year: int, sequence: int) -> str:
    return f"{CASE_NUMBER_PREFIX}-{year}-{sequence:04d}"


class CaseStore:
    """SQLAlchemy-backed case persistence."""

    def __init__(self, db_session: Session):
        self.db = db_session

    # =========================================================================
    # CREATE
    # =========================================================================

    def create(
        self,
        *,
        feedback_id: int,
        entity_name: str,
        violated_codes: List[Violation],
        violation_summary: str,
        notification_text: str,
        notified_at: datetime,
        deadline: datetime,
    ) -> ComplianceCaseDB:
        """
        Insert a NOTIFIED case with the next case number for the year.

        Raises:
            ConflictError: A case already exists for feedback_id
            PersistenceError: The write failed
        """
        if self.list_by_feedback_id(feedback_id):
            raise ConflictError(f"A case already exists for feedback {feedback_id}")

        year = notified_at.year
        self._ensure_sequence_row(year)

        try:
            case_number = self._allocate_case_number(year)
            case = ComplianceCaseDB(
                case_number=case_number,
                feedback_id=feedback_id,
                entity_name=entity_name,
                violated_codes=encode_violations(violated_codes),
                violation_summary=violation_summary,
                notification_text=notification_text,
                status=CaseStatus.NOTIFIED,
                notified_at=notified_at,
                deadline=deadline,
                evidence_files=encode_strings([]),
                created_at=notified_at,
            )
            self.db.add(case)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            # Lost a race with a concurrent escalation of the same feedback
            raise ConflictError(f"A case already exists for feedback {feedback_id}")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Case creation failed for feedback {feedback_id}: {e}")
            raise PersistenceError(f"Failed to create case: {e}")

        self.db.refresh(case)
        logger.info(f"Created case {case.case_number} for feedback {feedback_id}")
        return case

    def _ensure_sequence_row(self, year: int) -> None:
        """Create the year's counter row in its own short transaction."""
        try:
            exists = self.db.execute(
                select(CaseNumberSequenceDB.year).where(CaseNumberSequenceDB.year == year)
            ).first()
            if exists:
                return
            self.db.add(CaseNumberSequenceDB(year=year, last_value=0))
            self.db.commit()
        except IntegrityError:
            # Another creator inserted it first
            self.db.rollback()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to initialise case number sequence: {e}")

    def _allocate_case_number(self, year: int) -> str:
        """
        Increment the counter with a single UPDATE.

        The UPDATE holds the row (or database) write lock until the
        surrounding transaction ends, so concurrent creators serialize.
        """
        self.db.execute(
            update(CaseNumberSequenceDB)
            .where(CaseNumberSequenceDB.year == year)
            .values(last_value=CaseNumberSequenceDB.last_value + 1)
            .execution_options(synchronize_session=False)
        )
        sequence = self.db.execute(
            select(CaseNumberSequenceDB.last_value).where(CaseNumberSequenceDB.year == year)
        ).scalar_one()
        return format_case_number(year, sequence)

    # =========================================================================
    # READ
    # =========================================================================

    def _query(self, *criteria) -> List[ComplianceCaseDB]:
        try:
            return (
                self.db.query(ComplianceCaseDB)
                .filter(*criteria)
                .order_by(ComplianceCaseDB.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to read cases: {e}")

    def get_by_id(self, case_id: int) -> ComplianceCaseDB:
        try:
            case = self.db.get(ComplianceCaseDB, case_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to read case {case_id}: {e}")
        if case is None:
            raise NotFoundError(f"Case not found: {case_id}")
        return case

    def list_all(self) -> List[ComplianceCaseDB]:
        return self._query()

    def list_by_entity(self, entity_name: str) -> List[ComplianceCaseDB]:
        return self._query(ComplianceCaseDB.entity_name == entity_name)

    def list_by_feedback_id(self, feedback_id: int) -> List[ComplianceCaseDB]:
        return self._query(ComplianceCaseDB.feedback_id == feedback_id)

    def list_by_status(self, status: CaseStatus) -> List[ComplianceCaseDB]:
        return self._query(ComplianceCaseDB.status == status)

    def list_overdue(self, status: CaseStatus, now: datetime) -> List[ComplianceCaseDB]:
        return self._query(ComplianceCaseDB.status == status, ComplianceCaseDB.deadline < now)

    def feedback_ids_with_cases(self) -> set:
        try:
            return {row[0] for row in self.db.query(ComplianceCaseDB.feedback_id).all()}
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to read cases: {e}")

    # =========================================================================
    # TRANSITION
    # =========================================================================

    def apply_transition(
        self,
        case: ComplianceCaseDB,
        mutate: Callable[[ComplianceCaseDB], None],
        event: HistoryEvent,
    ) -> ComplianceCaseDB:
        """
        Apply a mutation and append its history event in one commit.

        The UPDATE is guarded by the version loaded with `case`; if another
        transition committed first, nothing is written.

        Raises:
            ConflictError: The case changed since it was read
            PersistenceError: The write failed
        """
        case_id = case.id
        try:
            mutate(case)
            case.history.append(
                CaseHistoryDB(
                    sequence=len(case.history) + 1,
                    event_type=event.type,
                    timestamp=event.timestamp,
                    text=event.text,
                    files=encode_strings(event.files) if event.files else None,
                    notes=event.notes,
                )
            )
            self.db.commit()
        except (StaleDataError, IntegrityError):
            self.db.rollback()
            logger.warning(f"Concurrent update detected on case {case_id}, transition discarded")
            raise ConflictError(f"Case {case_id} was modified concurrently; reload and retry")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Transition write failed for case {case_id}: {e}")
            raise PersistenceError(f"Failed to update case {case_id}: {e}")

        self.db.refresh(case)
        return case
