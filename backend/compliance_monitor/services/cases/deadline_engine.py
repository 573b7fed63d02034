"""
Deadline Engine

Response deadlines run RESPONSE_DEADLINE_DAYS calendar days from the
triggering event (notification or rejection). Each rejection starts a
fresh window; deadlines are never extended from the original notice.

DeadlineScheduler moves overdue NOTIFIED cases to PENALTY. It is run
by the internal scheduler endpoint, not on read.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from ...config import RESPONSE_DEADLINE_DAYS
from ...exceptions import ConflictError
from ...models.domain import CaseStatus

logger = logging.getLogger(__name__)

PENALTY_NOTES = "Response deadline elapsed without evidence - penalty applied."


class DeadlineEngine:
    """Deadline arithmetic for compliance cases."""

    def __init__(self, days: int = RESPONSE_DEADLINE_DAYS):
        self.days = days

    def calculate_deadline(self, event_time: datetime) -> datetime:
        return event_time + timedelta(days=self.days)

    def is_overdue(self, status: CaseStatus, deadline: Optional[datetime], now: datetime) -> bool:
        """Only cases awaiting the entity's evidence can be overdue."""
        if status != CaseStatus.NOTIFIED or deadline is None:
            return False
        return now > deadline

    def days_remaining(self, deadline: Optional[datetime], now: datetime) -> Optional[int]:
        if deadline is None:
            return None
        return (deadline - now).days


class DeadlineScheduler:
    """
    Penalty sweep over NOTIFIED cases past their deadline.

    Each case is its own atomic transition; a case changed concurrently
    is skipped and reported, never retried.
    """

    def __init__(self, lifecycle):
        self.lifecycle = lifecycle

    def run_penalty_sweep(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Penalise every NOTIFIED case whose deadline is strictly before now."""
        now = now or self.lifecycle.clock()
        overdue = self.lifecycle.store.list_overdue(CaseStatus.NOTIFIED, now)

        penalised, skipped = [], []
        for case in overdue:
            case_id, case_number = case.id, case.case_number
            try:
                self.lifecycle.apply_penalty(case_id, notes=PENALTY_NOTES)
                penalised.append(case_number)
            except ConflictError as e:
                logger.warning(f"Penalty skipped for {case_number}: {e.message}")
                skipped.append(case_number)

        logger.info(f"Penalty sweep complete: {len(penalised)} penalised, {len(skipped)} skipped")
        return {
            "task": "penalty_sweep",
            "run_date": now.isoformat(),
            "cases_checked": len(overdue),
            "penalised": penalised,
            "skipped": skipped,
        }
