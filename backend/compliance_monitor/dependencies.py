"""
Compliance Monitor - FastAPI dependencies

The rule catalog is built once at startup and held on app.state.
"""
from datetime import datetime
from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .clock import utcnow
from .config import ANTHROPIC_API_KEY
from .database import get_db
from .services.catalog import RuleCatalog
from .services.cases import CaseLifecycle
from .services.feedback import FeedbackAnalysisService, FeedbackService, build_analysis_service


def get_catalog(request: Request) -> RuleCatalog:
    return request.app.state.catalog


def get_clock() -> Callable[[], datetime]:
    return utcnow


def get_lifecycle(
    db: Session = Depends(get_db),
    catalog: RuleCatalog = Depends(get_catalog),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> CaseLifecycle:
    return CaseLifecycle(db, catalog, clock=clock)


def get_feedback_service(
    db: Session = Depends(get_db),
    catalog: RuleCatalog = Depends(get_catalog),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> FeedbackService:
    return FeedbackService(db, catalog, clock=clock)


def get_analysis_service(
    db: Session = Depends(get_db),
    catalog: RuleCatalog = Depends(get_catalog),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> FeedbackAnalysisService:
    return build_analysis_service(db, catalog, api_key=ANTHROPIC_API_KEY, clock=clock)
