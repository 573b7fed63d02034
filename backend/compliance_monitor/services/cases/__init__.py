"""
Compliance case lifecycle

CaseStateMachine: transition table
DeadlineEngine / DeadlineScheduler: response windows and penalty sweep
CaseStore: atomic persistence
CaseLifecycle: orchestration and reads
"""
from .state_machine import CaseStateMachine
from .deadline_engine import DeadlineEngine, DeadlineScheduler
from .case_store import CaseStore, format_case_number
from .case_service import CaseLifecycle, DEFAULT_ACCEPT_NOTES

__all__ = [
    "CaseStateMachine",
    "DeadlineEngine",
    "DeadlineScheduler",
    "CaseStore",
    "format_case_number",
    "CaseLifecycle",
    "DEFAULT_ACCEPT_NOTES",
]
