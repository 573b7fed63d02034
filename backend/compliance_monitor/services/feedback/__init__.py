"""Feedback records and the analysis pipeline"""
from .feedback_service import FeedbackService
from .analysis_service import FeedbackAnalysisService, build_analysis_service

__all__ = ["FeedbackService", "FeedbackAnalysisService", "build_analysis_service"]
