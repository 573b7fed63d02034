"""
External Judgment Strategy

Asks the external collaborator which candidate rules the complaint
genuinely violates. Output is validated against a strict schema and
restricted to the candidate set before it reaches the pipeline.
"""
import json
import logging
from typing import List, Literal, Tuple

from pydantic import BaseModel, Field, ValidationError as SchemaError

from ...exceptions import ExternalJudgeError
from ...models.domain import Confidence, MatchInput, Rule, Violation
from ..llm_client import AnthropicClient, strip_code_fences

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are an expert on the Code for Government Services.
Given a citizen complaint and a set of potentially relevant rules from the code, determine which rules are genuinely violated.

Return a JSON array of objects, each with:
- code: the rule number (e.g. "1.7.3")
- confidence: "high" | "medium" | "low"
- explanation: 2-3 sentences explaining why this specific rule appears to be violated based on the complaint evidence

Be conservative - only flag genuine evidence of non-compliance. A complaint about waiting time does not automatically mean every process rule is violated.
Return an empty array [] if no rules are clearly violated.
Return JSON only, no markdown fences."""


class JudgedViolation(BaseModel):
    """One entry of the collaborator's answer."""
    code: str = Field(..., min_length=1)
    confidence: Literal["high", "medium", "low"]
    explanation: str = ""


def build_user_message(match_input: MatchInput, candidates: List[Rule]) -> str:
    lines = [
        f"Complaint: {match_input.complaint_text}",
        f"Entity: {match_input.entity}",
        f"Channel: {match_input.channel}" if match_input.channel else None,
        f"Dislike traits: {', '.join(match_input.traits)}" if match_input.traits else None,
        f"Category: {match_input.category}",
        f"Severity: {match_input.severity}",
        "",
        "Available rules:",
        json.dumps([rule.to_candidate() for rule in candidates], indent=2, ensure_ascii=False),
    ]
    return "\n".join(line for line in lines if line is not None)


def parse_judgment(raw_text: str) -> List[JudgedViolation]:
    """
    Parse the collaborator's reply.

    Raises ExternalJudgeError when the reply is not a JSON array of
    well-formed violation objects.
    """
    try:
        payload = json.loads(strip_code_fences(raw_text))
    except ValueError:
        raise ExternalJudgeError("External judge returned malformed JSON")
    if not isinstance(payload, list):
        raise ExternalJudgeError(
            f"External judge returned {type(payload).__name__}, expected a JSON array"
        )
    try:
        return [JudgedViolation(**item) for item in payload]
    except (SchemaError, TypeError) as e:
        raise ExternalJudgeError(f"External judge returned an invalid violation entry: {e}")


def restrict_to_candidates(
    judged: List[JudgedViolation],
    candidates: List[Rule],
) -> Tuple[List[Violation], List[str]]:
    """
    Keep only codes that were offered as candidates, preserving order.

    Returns (violations, dropped_codes). Duplicate codes keep their first
    occurrence.
    """
    allowed = {rule.code for rule in candidates}
    seen = set()
    violations: List[Violation] = []
    dropped: List[str] = []
    for item in judged:
        code = item.code.strip()
        if code not in allowed:
            dropped.append(code)
            continue
        if code in seen:
            continue
        seen.add(code)
        violations.append(Violation(code=code, confidence=Confidence(item.confidence), explanation=item.explanation))
    return violations, dropped


class ExternalJudge:
    """Judgment strategy backed by the Anthropic Messages API."""

    def __init__(self, client: AnthropicClient):
        self.client = client

    def judge(self, match_input: MatchInput, candidates: List[Rule]) -> List[JudgedViolation]:
        raw_text = self.client.complete(SYSTEM_PROMPT, build_user_message(match_input, candidates))
        return parse_judgment(raw_text)
