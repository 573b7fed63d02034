"""
Scheduler API Routes

Internal endpoints for system-automatic tasks.
"""
from fastapi import APIRouter, Depends, HTTPException, Header

from ..config import INTERNAL_API_KEY
from ..dependencies import get_lifecycle
from ..exceptions import ComplianceError
from ..services.cases import CaseLifecycle, DeadlineScheduler
from .errors import to_http_exception


router = APIRouter(prefix="/internal", tags=["scheduler"])


async def verify_internal_key(x_internal_key: str = Header(...)):
    """Verify internal API key for scheduler endpoints."""
    if x_internal_key != INTERNAL_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid internal API key")
    return True


@router.post("/penalty-sweep", response_model=dict)
def run_penalty_sweep(
    lifecycle: CaseLifecycle = Depends(get_lifecycle),
    _: bool = Depends(verify_internal_key),
):
    """
    Move NOTIFIED cases past their deadline to PENALTY.

    System-automatic - no reviewer confirmation required.
    """
    try:
        return DeadlineScheduler(lifecycle).run_penalty_sweep()
    except ComplianceError as e:
        raise to_http_exception(e)
