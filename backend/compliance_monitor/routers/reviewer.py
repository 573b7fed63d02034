"""
Reviewer API Routes

Inbox of flagged feedback, dismissal, and escalation to a compliance case.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..dependencies import get_feedback_service, get_lifecycle
from ..exceptions import ComplianceError
from .errors import to_http_exception
from ..services.cases import CaseLifecycle
from ..services.feedback import FeedbackService


router = APIRouter(prefix="/reviewer", tags=["reviewer"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class DismissRequest(BaseModel):
    feedback_id: int


class ViolationItem(BaseModel):
    code: str
    confidence: str
    explanation: str = ""


class NotifyRequest(BaseModel):
    """Escalate a flagged feedback item into a compliance case."""
    feedback_id: int
    entity: str = Field(..., description="Entity the case is opened against")
    violated_codes: List[ViolationItem] = Field(default_factory=list)
    violation_summary: Optional[str] = None
    notification_text: str = Field(..., description="Notice sent to the entity")


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/inbox", response_model=dict)
def get_inbox(service: FeedbackService = Depends(get_feedback_service)):
    items = service.inbox()
    return {"items": items, "total": len(items)}


@router.post("/dismiss", response_model=dict)
def dismiss_feedback(
    request: DismissRequest,
    service: FeedbackService = Depends(get_feedback_service),
):
    try:
        return service.dismiss(request.feedback_id)
    except ComplianceError as e:
        raise to_http_exception(e)


@router.post("/notify", response_model=dict)
def notify_entity(
    request: NotifyRequest,
    lifecycle: CaseLifecycle = Depends(get_lifecycle),
):
    """
    Open a compliance case in NOTIFIED.

    409 if a case already exists for the feedback item.
    """
    try:
        return lifecycle.create_case(
            feedback_id=request.feedback_id,
            violated_codes=[v.model_dump() for v in request.violated_codes],
            violation_summary=request.violation_summary,
            notification_text=request.notification_text,
            entity_name=request.entity,
        )
    except ComplianceError as e:
        raise to_http_exception(e)


@router.get("/overview", response_model=dict)
def get_overview(service: FeedbackService = Depends(get_feedback_service)):
    return service.overview()
