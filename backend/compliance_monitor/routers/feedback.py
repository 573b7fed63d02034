"""
Feedback API Routes

Citizen feedback submission and the analysis pipeline.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..dependencies import get_analysis_service, get_feedback_service
from ..exceptions import ComplianceError
from .errors import to_http_exception
from ..services.feedback import FeedbackAnalysisService, FeedbackService


router = APIRouter(tags=["feedback"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class SubmitFeedbackRequest(BaseModel):
    """Request to submit a feedback record."""
    entity_name: str = Field(..., description="Government entity the feedback is about")
    entity_name_ar: Optional[str] = Field(None, description="Arabic entity name")
    channel: Optional[str] = Field(None, description="Service center or digital channel")
    feedback_type: Optional[str] = Field(None, description="complaint | suggestion | compliment")
    traits: List[str] = Field(default_factory=list, description="Dislike trait labels")
    dislike_comment: Optional[str] = None
    general_comment: Optional[str] = None


class AnalyzeRequest(BaseModel):
    feedback_id: int


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/feedback", response_model=dict)
def submit_feedback(
    request: SubmitFeedbackRequest,
    service: FeedbackService = Depends(get_feedback_service),
):
    try:
        return service.submit(
            entity_name=request.entity_name,
            entity_name_ar=request.entity_name_ar,
            channel=request.channel,
            feedback_type=request.feedback_type,
            traits=request.traits,
            dislike_comment=request.dislike_comment,
            general_comment=request.general_comment,
        )
    except ComplianceError as e:
        raise to_http_exception(e)


@router.get("/feedback/entities", response_model=dict)
def list_entities(service: FeedbackService = Depends(get_feedback_service)):
    """Distinct entity names that have received feedback."""
    return {"entities": service.list_entities()}


@router.post("/analyze", response_model=dict)
def analyze_feedback(
    request: AnalyzeRequest,
    service: FeedbackAnalysisService = Depends(get_analysis_service),
):
    """
    Classify a stored feedback record and match rule violations.

    Runs once per record; re-analysis is rejected with 409.
    """
    try:
        return service.process(request.feedback_id)
    except ComplianceError as e:
        raise to_http_exception(e)
