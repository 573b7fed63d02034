"""
Compliance Case API Routes

Case reads for reviewer/entity tooling and the lifecycle transitions.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..dependencies import get_lifecycle
from ..exceptions import ComplianceError
from .errors import to_http_exception
from ..services.cases import CaseLifecycle


router = APIRouter(prefix="/cases", tags=["cases"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class SubmitEvidenceRequest(BaseModel):
    """Entity response to a compliance notice."""
    evidence_text: str = Field("", description="Description of corrective action taken")
    evidence_files: List[str] = Field(default_factory=list, description="File references")


class VerifyRequest(BaseModel):
    action: str = Field(..., description="accept | reject")
    reviewer_notes: Optional[str] = None


class CloseRequest(BaseModel):
    reviewer_notes: str = Field("", description="Reason the case is closed as non-compliant")


# =============================================================================
# READS
# =============================================================================

@router.get("", response_model=dict)
def list_cases(
    entity: Optional[str] = Query(None, description="Filter by entity name"),
    lifecycle: CaseLifecycle = Depends(get_lifecycle),
):
    try:
        cases = lifecycle.list_cases(entity)
    except ComplianceError as e:
        raise to_http_exception(e)
    return {"cases": cases, "total": len(cases)}


@router.get("/{case_id}", response_model=dict)
def get_case(case_id: int, lifecycle: CaseLifecycle = Depends(get_lifecycle)):
    try:
        return lifecycle.get_case(case_id)
    except ComplianceError as e:
        raise to_http_exception(e)


# =============================================================================
# TRANSITIONS
# =============================================================================

@router.post("/{case_id}/evidence", response_model=dict)
def submit_evidence(
    case_id: int,
    request: SubmitEvidenceRequest,
    lifecycle: CaseLifecycle = Depends(get_lifecycle),
):
    """Entity action: NOTIFIED | PENALTY → EVIDENCE_SUBMITTED."""
    try:
        return lifecycle.submit_evidence(case_id, request.evidence_text, request.evidence_files)
    except ComplianceError as e:
        raise to_http_exception(e)


@router.post("/{case_id}/verify", response_model=dict)
def verify_evidence(
    case_id: int,
    request: VerifyRequest,
    lifecycle: CaseLifecycle = Depends(get_lifecycle),
):
    """Reviewer action: accept → COMPLIANT, reject → NOTIFIED with a fresh deadline."""
    try:
        return lifecycle.verify(case_id, request.action, request.reviewer_notes)
    except ComplianceError as e:
        raise to_http_exception(e)


@router.post("/{case_id}/close", response_model=dict)
def close_case(
    case_id: int,
    request: CloseRequest,
    lifecycle: CaseLifecycle = Depends(get_lifecycle),
):
    """Reviewer action: PENALTY → NON_COMPLIANT."""
    try:
        return lifecycle.close_non_compliant(case_id, request.reviewer_notes)
    except ComplianceError as e:
        raise to_http_exception(e)
