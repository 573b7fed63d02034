"""
Tests for the CaseStateMachine transition table.
"""
import pytest

from compliance_monitor.exceptions import ConflictError, InvalidTransitionError
from compliance_monitor.models.domain import CaseAction, CaseStatus
from compliance_monitor.services.cases import CaseStateMachine


ALLOWED = {
    (CaseStatus.NOTIFIED, CaseAction.SUBMIT_EVIDENCE): CaseStatus.EVIDENCE_SUBMITTED,
    (CaseStatus.PENALTY, CaseAction.SUBMIT_EVIDENCE): CaseStatus.EVIDENCE_SUBMITTED,
    (CaseStatus.EVIDENCE_SUBMITTED, CaseAction.ACCEPT): CaseStatus.COMPLIANT,
    (CaseStatus.EVIDENCE_SUBMITTED, CaseAction.REJECT): CaseStatus.NOTIFIED,
    (CaseStatus.NOTIFIED, CaseAction.APPLY_PENALTY): CaseStatus.PENALTY,
    (CaseStatus.PENALTY, CaseAction.CLOSE): CaseStatus.NON_COMPLIANT,
}


class TestCaseStateMachine:

    def setup_method(self):
        self.machine = CaseStateMachine()

    @pytest.mark.parametrize("pair,expected", list(ALLOWED.items()))
    def test_allowed_transitions(self, pair, expected):
        state, action = pair
        assert self.machine.can_transition(state, action) == (True, None)
        assert self.machine.transition(state, action) == expected

    @pytest.mark.parametrize("state", list(CaseStatus))
    @pytest.mark.parametrize("action", list(CaseAction))
    def test_everything_else_is_rejected(self, state, action):
        if (state, action) in ALLOWED:
            return
        allowed, message = self.machine.can_transition(state, action)
        assert allowed is False
        assert message == f"Invalid transition: {state.value} + {action.value}"
        with pytest.raises(InvalidTransitionError):
            self.machine.transition(state, action)

    def test_invalid_transition_is_a_conflict(self):
        with pytest.raises(ConflictError) as exc_info:
            self.machine.transition(CaseStatus.NOTIFIED, CaseAction.ACCEPT)
        assert exc_info.value.status_code == 409
        assert exc_info.value.current_state == CaseStatus.NOTIFIED

    def test_terminal_states_have_no_actions(self):
        for state in (CaseStatus.COMPLIANT, CaseStatus.NON_COMPLIANT):
            assert self.machine.is_terminal(state)
            assert self.machine.get_available_actions(state) == []

    def test_available_actions(self):
        assert self.machine.get_available_actions(CaseStatus.PENALTY) == [
            CaseAction.SUBMIT_EVIDENCE, CaseAction.CLOSE,
        ]
        assert self.machine.get_available_actions(CaseStatus.EVIDENCE_SUBMITTED) == [
            CaseAction.ACCEPT, CaseAction.REJECT,
        ]
