"""
Compliance Monitor - FastAPI Application

Main entry point for the compliance monitoring backend.

Pipeline:
- Feedback → Classifier → Classification (written once)
- Classification → RelevanceRanker → candidate rules
- Candidates → ViolationResolver → Violation list
- Reviewer escalation → CaseLifecycle → ComplianceCase + audit history
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import LOG_LEVEL, RULES_PATH, api_key_configured
from .database import init_db
from .routers import cases_router, feedback_router, reviewer_router, scheduler_router
from .services.catalog import RuleCatalog

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database and rule catalog on startup."""
    init_db()
    app.state.catalog = RuleCatalog.from_path(RULES_PATH)
    mode = "live" if api_key_configured() else "mock"
    logger.info(f"Compliance Monitor started ({mode} mode, rules={RULES_PATH})")
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Compliance Monitor",
    description="""
    Compliance Monitor - Complaint-to-Case Enforcement

    Matches citizen complaints against the Code for Government Services
    and drives detected violations through formal compliance cases.

    ## Case lifecycle
    NOTIFIED → EVIDENCE_SUBMITTED → COMPLIANT
    EVIDENCE_SUBMITTED → NOTIFIED (rejected, fresh 20-day deadline)
    NOTIFIED → PENALTY (deadline elapsed) → NON_COMPLIANT
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(feedback_router)
app.include_router(reviewer_router)
app.include_router(cases_router)
app.include_router(scheduler_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Compliance Monitor",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


# For running with: python -m compliance_monitor.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
