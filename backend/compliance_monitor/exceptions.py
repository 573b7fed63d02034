"""
Compliance Monitor - Error Taxonomy

Every failure surfaced by the core derives from ComplianceError and carries
the HTTP status the routers translate it to (see routers/errors.py).
"""


class ComplianceError(Exception):
    """Base class for all core errors."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ComplianceError):
    """Missing/empty required field or invalid enum value."""
    status_code = 400


class NotFoundError(ComplianceError):
    """Unknown case or feedback id."""
    status_code = 404


class ConflictError(ComplianceError):
    """Duplicate case for a feedback item, or a lost concurrent update."""
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Action not permitted from the case's current status."""

    def __init__(self, current_state, action: str):
        state = getattr(current_state, "value", current_state)
        super().__init__(f"Invalid transition: {state} + {action}")
        self.current_state = current_state
        self.action = action


class ExternalJudgeError(ComplianceError):
    """External judgment call failed, timed out, or returned unusable data."""
    status_code = 502


class PersistenceError(ComplianceError):
    """Store unreachable or write failure."""
    status_code = 503
