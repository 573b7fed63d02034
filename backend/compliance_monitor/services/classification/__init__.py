"""Feedback classification"""
from .classifier import (
    FeedbackInput,
    HeuristicClassifier,
    ExternalClassifier,
)

__all__ = ["FeedbackInput", "HeuristicClassifier", "ExternalClassifier"]
