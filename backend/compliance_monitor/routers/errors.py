"""Translation of core errors into HTTP responses."""
from fastapi import HTTPException

from ..exceptions import ComplianceError


def to_http_exception(error: ComplianceError) -> HTTPException:
    """Translate a core error into the FastAPI exception for the router."""
    return HTTPException(status_code=error.status_code, detail=error.message)
