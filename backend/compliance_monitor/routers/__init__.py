"""Compliance Monitor - API Routers"""
from .feedback import router as feedback_router
from .reviewer import router as reviewer_router
from .cases import router as cases_router
from .scheduler import router as scheduler_router

__all__ = [
    "feedback_router",
    "reviewer_router",
    "cases_router",
    "scheduler_router",
]
