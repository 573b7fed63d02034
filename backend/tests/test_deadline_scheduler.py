"""
Tests for deadline arithmetic and the penalty sweep.
"""
from datetime import datetime, timedelta

import pytest

from compliance_monitor.exceptions import ConflictError
from compliance_monitor.models.domain import CaseStatus
from compliance_monitor.services.cases import CaseLifecycle, DeadlineEngine, DeadlineScheduler
from compliance_monitor.services.cases.deadline_engine import PENALTY_NOTES


@pytest.fixture
def lifecycle(db, catalog, clock):
    return CaseLifecycle(db, catalog, clock=clock)


def _open(lifecycle, make_feedback, entity_name="Ministry of Interior"):
    feedback = make_feedback(entity_name=entity_name)
    return lifecycle.create_case(
        feedback.id,
        [{"code": "2.1.1", "confidence": "high", "explanation": "Hours in the queue."}],
        "Excessive waiting time",
        "Please respond within 20 days.",
        entity_name,
    )


class TestDeadlineEngine:

    def setup_method(self):
        self.engine = DeadlineEngine()

    def test_deadline_is_twenty_calendar_days(self):
        event = datetime(2025, 2, 20, 14, 30)
        assert self.engine.calculate_deadline(event) == datetime(2025, 3, 12, 14, 30)

    def test_overdue_only_while_notified(self):
        deadline = datetime(2025, 3, 1)
        later = deadline + timedelta(minutes=1)
        assert self.engine.is_overdue(CaseStatus.NOTIFIED, deadline, later) is True
        assert self.engine.is_overdue(CaseStatus.NOTIFIED, deadline, deadline) is False
        assert self.engine.is_overdue(CaseStatus.EVIDENCE_SUBMITTED, deadline, later) is False
        assert self.engine.is_overdue(CaseStatus.COMPLIANT, deadline, later) is False

    def test_days_remaining(self):
        now = datetime(2025, 3, 1, 12)
        assert self.engine.days_remaining(now + timedelta(days=5), now) == 5
        assert self.engine.days_remaining(now - timedelta(days=2), now) == -2
        assert self.engine.days_remaining(None, now) is None


class TestPenaltySweep:

    def test_overdue_notified_cases_are_penalised(self, lifecycle, make_feedback, clock):
        overdue = _open(lifecycle, make_feedback)
        clock.advance(days=5)
        not_yet = _open(lifecycle, make_feedback)
        answered = _open(lifecycle, make_feedback)
        lifecycle.submit_evidence(answered["case_id"], "Evidence", [])

        clock.advance(days=16)
        result = DeadlineScheduler(lifecycle).run_penalty_sweep()

        assert result["cases_checked"] == 1
        assert result["penalised"] == [overdue["case_number"]]
        assert result["skipped"] == []

        case = lifecycle.get_case(overdue["case_id"])
        assert case["status"] == "penalty"
        assert case["history"][-1] == {
            "type": "penalty_applied",
            "timestamp": clock.now.isoformat(),
            "notes": PENALTY_NOTES,
        }
        assert lifecycle.get_case(not_yet["case_id"])["status"] == "notified"
        assert lifecycle.get_case(answered["case_id"])["status"] == "evidence_submitted"

    def test_sweep_is_idempotent(self, lifecycle, make_feedback, clock):
        _open(lifecycle, make_feedback)
        clock.advance(days=30)
        scheduler = DeadlineScheduler(lifecycle)
        assert len(scheduler.run_penalty_sweep()["penalised"]) == 1
        assert scheduler.run_penalty_sweep()["cases_checked"] == 0

    def test_explicit_sweep_time(self, lifecycle, make_feedback, clock):
        opened = _open(lifecycle, make_feedback)
        scheduler = DeadlineScheduler(lifecycle)
        assert scheduler.run_penalty_sweep(now=clock.now + timedelta(days=20))["penalised"] == []
        result = scheduler.run_penalty_sweep(now=clock.now + timedelta(days=21))
        assert result["penalised"] == [opened["case_number"]]

    def test_lost_race_is_skipped(self, lifecycle, make_feedback, clock, monkeypatch):
        first = _open(lifecycle, make_feedback)
        second = _open(lifecycle, make_feedback)
        clock.advance(days=21)

        original = lifecycle.apply_penalty

        def racing_apply_penalty(case_id, notes):
            if case_id == first["case_id"]:
                raise ConflictError(f"Case {case_id} was modified concurrently; reload and retry")
            return original(case_id, notes)

        monkeypatch.setattr(lifecycle, "apply_penalty", racing_apply_penalty)
        result = DeadlineScheduler(lifecycle).run_penalty_sweep()

        assert result["skipped"] == [first["case_number"]]
        assert result["penalised"] == [second["case_number"]]
