"""
Violation Resolver

Turns the ranked candidate rules into the final, conservative violation
list. Uses the external judge when one is configured and the
deterministic policy otherwise.
"""
import logging
from typing import List, Optional

from ...models.domain import (
    AnalysisMode, Classification, MatchInput, ResolutionResult, Rule, Severity,
)
from .fallback import DeterministicPolicy
from .judge import ExternalJudge, restrict_to_candidates

logger = logging.getLogger(__name__)


def should_match_violations(classification: Classification) -> bool:
    """Violation matching runs only for complaints above low severity."""
    return bool(classification.is_complaint) and classification.severity != Severity.LOW


class ViolationResolver:
    """
    Resolves candidates into violations.

    External judgment: codes outside the candidate set are dropped and
    reported; collaborator failures propagate as ExternalJudgeError.
    Deterministic policy: category templates scaled by severity.
    """

    def __init__(
        self,
        judge: Optional[ExternalJudge] = None,
        policy: Optional[DeterministicPolicy] = None,
    ):
        self.judge = judge
        self.policy = policy or DeterministicPolicy()

    @property
    def mode(self) -> AnalysisMode:
        return AnalysisMode.LIVE if self.judge is not None else AnalysisMode.MOCK

    def resolve(self, match_input: MatchInput, candidates: List[Rule]) -> ResolutionResult:
        if not candidates:
            return ResolutionResult(violations=[], mode=self.mode)

        if self.judge is None:
            violations = self.policy.generate(match_input)
            logger.info(
                f"Deterministic policy flagged {len(violations)} violations "
                f"for category={match_input.category} severity={match_input.severity}"
            )
            return ResolutionResult(violations=violations, mode=AnalysisMode.MOCK)

        judged = self.judge.judge(match_input, candidates)
        violations, dropped = restrict_to_candidates(judged, candidates)
        if dropped:
            logger.warning(
                f"Dropped {len(dropped)} violation codes outside the candidate set "
                f"(feedback_id={match_input.feedback_id}): {', '.join(dropped)}"
            )
        logger.info(f"External judge confirmed {len(violations)} of {len(candidates)} candidates")
        return ResolutionResult(violations=violations, dropped_codes=dropped, mode=AnalysisMode.LIVE)
