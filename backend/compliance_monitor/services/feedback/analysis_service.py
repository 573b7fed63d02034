"""
Feedback Analysis Pipeline

classify → gate → rank → resolve → persist

Classification and violations are written exactly once per feedback
record, in a single commit. Live mode (external model) is used only when
an API key is configured; otherwise the deterministic strategies run.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...clock import utcnow
from ...config import api_key_configured
from ...exceptions import ConflictError, NotFoundError, PersistenceError
from ...models.codec import decode_strings, encode_violations
from ...models.db_models import FeedbackDB
from ...models.domain import MatchInput, ResolutionResult
from ..catalog import RuleCatalog
from ..classification import ExternalClassifier, FeedbackInput, HeuristicClassifier
from ..llm_client import AnthropicClient
from ..matching import ExternalJudge, RelevanceRanker, ViolationResolver, should_match_violations

logger = logging.getLogger(__name__)


class FeedbackAnalysisService:
    """Runs the classification and violation matching pipeline for one record."""

    def __init__(
        self,
        db_session: Session,
        classifier,
        ranker: RelevanceRanker,
        resolver: ViolationResolver,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db_session
        self.classifier = classifier
        self.ranker = ranker
        self.resolver = resolver
        self.clock = clock

    def process(self, feedback_id: int) -> Dict[str, Any]:
        """
        Analyze a stored feedback record.

        Raises:
            NotFoundError: Unknown feedback id
            ConflictError: Record was already analyzed
            ExternalJudgeError: Live collaborator failed; nothing is written
            PersistenceError: The write failed
        """
        feedback = self.db.get(FeedbackDB, feedback_id)
        if feedback is None:
            raise NotFoundError(f"Feedback not found: {feedback_id}")
        if feedback.processed_at is not None:
            raise ConflictError(f"Feedback {feedback_id} has already been analyzed")

        traits = decode_strings(feedback.traits, "traits")
        text = feedback.complaint_text

        classification = self.classifier.classify(FeedbackInput(
            feedback_text=text,
            entity=feedback.entity_name,
            channel=feedback.channel,
            traits=traits,
            feedback_type=feedback.feedback_type,
        ))

        if should_match_violations(classification):
            match_input = MatchInput(
                complaint_text=text,
                entity=feedback.entity_name,
                category=classification.category.value,
                severity=classification.severity.value,
                channel=feedback.channel,
                traits=traits,
                feedback_id=feedback.id,
            )
            candidates = self.ranker.rank(text, match_input.category, traits)
            result = self.resolver.resolve(match_input, candidates)
        else:
            result = ResolutionResult(violations=[], mode=self.resolver.mode)

        feedback.ai_sentiment = classification.sentiment.value
        feedback.ai_category = classification.category.value
        feedback.ai_is_complaint = classification.is_complaint
        feedback.ai_severity = classification.severity.value
        feedback.ai_summary = classification.summary
        feedback.ai_code_violations = encode_violations(result.violations)
        feedback.processed_at = self.clock()
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store analysis for feedback {feedback_id}: {e}")
            raise PersistenceError(f"Failed to store analysis: {e}")

        logger.info(
            f"Analyzed feedback {feedback_id} ({result.mode.value}): "
            f"complaint={classification.is_complaint} severity={classification.severity.value} "
            f"violations={len(result.violations)}"
        )
        return {
            "feedback_id": feedback_id,
            "classification": classification.to_dict(),
            "violations": [v.to_dict() for v in result.violations],
            "dropped_codes": result.dropped_codes,
            "mode": result.mode.value,
        }


def build_analysis_service(
    db_session: Session,
    catalog: RuleCatalog,
    api_key: Optional[str] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FeedbackAnalysisService:
    """Wire the pipeline in live mode when a usable API key is configured."""
    if api_key_configured(api_key):
        client = AnthropicClient(api_key=api_key) if api_key else AnthropicClient()
        classifier = ExternalClassifier(client)
        resolver = ViolationResolver(judge=ExternalJudge(client))
    else:
        classifier = HeuristicClassifier()
        resolver = ViolationResolver()
    return FeedbackAnalysisService(
        db_session,
        classifier=classifier,
        ranker=RelevanceRanker(catalog),
        resolver=resolver,
        clock=clock,
    )
