"""
Case State Machine

Single CaseStatus enum is the source of truth.
State transitions:
    NOTIFIED → EVIDENCE_SUBMITTED → COMPLIANT
                        ↓ reject
                    NOTIFIED (fresh deadline)
    NOTIFIED → PENALTY (deadline elapsed) → EVIDENCE_SUBMITTED | NON_COMPLIANT

COMPLIANT and NON_COMPLIANT are terminal.
"""
from typing import List, Optional, Tuple

from ...exceptions import InvalidTransitionError
from ...models.domain import CaseAction, CaseStatus


class CaseStateMachine:
    """
    Compliance case state machine.

    Transitions are deterministic on (current_state, action); any pair not
    in the table is rejected without touching the case.
    """

    # State transition map: (current_state, action) -> new_state
    TRANSITIONS = {
        # Entity responds
        (CaseStatus.NOTIFIED, CaseAction.SUBMIT_EVIDENCE): CaseStatus.EVIDENCE_SUBMITTED,
        (CaseStatus.PENALTY, CaseAction.SUBMIT_EVIDENCE): CaseStatus.EVIDENCE_SUBMITTED,

        # Reviewer verifies
        (CaseStatus.EVIDENCE_SUBMITTED, CaseAction.ACCEPT): CaseStatus.COMPLIANT,
        (CaseStatus.EVIDENCE_SUBMITTED, CaseAction.REJECT): CaseStatus.NOTIFIED,

        # Deadline elapsed without evidence
        (CaseStatus.NOTIFIED, CaseAction.APPLY_PENALTY): CaseStatus.PENALTY,

        # Reviewer closes a penalised case
        (CaseStatus.PENALTY, CaseAction.CLOSE): CaseStatus.NON_COMPLIANT,
    }

    TERMINAL_STATES = {CaseStatus.COMPLIANT, CaseStatus.NON_COMPLIANT}

    def can_transition(
        self,
        current_state: CaseStatus,
        action: CaseAction,
    ) -> Tuple[bool, Optional[str]]:
        """
        Check if a state transition is allowed.

        Returns:
            Tuple of (is_allowed, error_message)
        """
        if (current_state, action) not in self.TRANSITIONS:
            return False, f"Invalid transition: {current_state.value} + {action.value}"
        return True, None

    def transition(self, current_state: CaseStatus, action: CaseAction) -> CaseStatus:
        """
        Resolve the next state.

        Raises:
            InvalidTransitionError: If the action is not allowed from current_state
        """
        is_allowed, _ = self.can_transition(current_state, action)
        if not is_allowed:
            raise InvalidTransitionError(current_state, action.value)
        return self.TRANSITIONS[(current_state, action)]

    def get_available_actions(self, current_state: CaseStatus) -> List[CaseAction]:
        return [action for (state, action) in self.TRANSITIONS if state == current_state]

    def is_terminal(self, state: CaseStatus) -> bool:
        return state in self.TERMINAL_STATES
