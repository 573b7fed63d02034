"""
Feedback Classifier

Produces the classification fields of a feedback record: sentiment,
complaint flag, severity, category and a one-line summary.

HeuristicClassifier is deterministic (trait maps + signal words).
ExternalClassifier asks the external model and validates its answer.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import List, Literal, Optional

from pydantic import BaseModel, ValidationError as SchemaError

from ...exceptions import ExternalJudgeError
from ...models.domain import Category, Classification, Sentiment, Severity
from ..llm_client import AnthropicClient, strip_code_fences

logger = logging.getLogger(__name__)


@dataclass
class FeedbackInput:
    feedback_text: str
    entity: str
    channel: Optional[str] = None
    traits: List[str] = field(default_factory=list)
    feedback_type: Optional[str] = None


# =============================================================================
# HEURISTIC CLASSIFIER
# =============================================================================

TRAIT_TO_CATEGORY = {
    "Long waiting time": Category.WAITING_TIME,
    "Unclear process": Category.PROCESS_COMPLEXITY,
    "Rude staff": Category.EMPLOYEE_CONDUCT,
    "Complex forms": Category.PROCESS_COMPLEXITY,
    "System downtime": Category.DIGITAL_EXPERIENCE,
    "Missing information": Category.INFORMATION_CLARITY,
    "No follow-up": Category.COMPLAINT_HANDLING,
    "Fees too high": Category.FEES,
}

TRAIT_TO_SEVERITY = {
    "Rude staff": Severity.HIGH,
    "System downtime": Severity.HIGH,
    "No follow-up": Severity.HIGH,
    "Complex forms": Severity.MEDIUM,
    "Long waiting time": Severity.MEDIUM,
    "Unclear process": Severity.MEDIUM,
    "Missing information": Severity.MEDIUM,
    "Fees too high": Severity.MEDIUM,
}

SUMMARIES = {
    Category.SERVICE_QUALITY: "Citizen reported issues with overall service quality and delivery standards.",
    Category.EMPLOYEE_CONDUCT: "Citizen reported unprofessional or unhelpful behavior from service center staff.",
    Category.PROCESS_COMPLEXITY: "Citizen found the service process overly complex and difficult to navigate.",
    Category.ACCESSIBILITY: "Citizen experienced accessibility barriers when trying to use the service.",
    Category.WAITING_TIME: "Citizen experienced excessive waiting times at the service center.",
    Category.COMMUNICATION: "Citizen reported lack of clear communication about service status or requirements.",
    Category.FEES: "Citizen expressed concern about the fees charged relative to the service provided.",
    Category.DIGITAL_EXPERIENCE: "Citizen encountered technical issues or poor usability in the digital service channel.",
    Category.INFORMATION_CLARITY: "Citizen found the provided information insufficient or unclear.",
    Category.COMPLAINT_HANDLING: "Citizen reported that a previous complaint was not addressed or followed up on.",
    Category.OTHER: "Citizen provided general feedback about the government service experience.",
}
POSITIVE_SUMMARY = "Citizen expressed satisfaction with the government service experience."
NEUTRAL_SUMMARY = "Citizen provided neutral feedback about the service."

NEGATIVE_SIGNALS = re.compile(
    r"بطيئ|slow|wait|rude|complex|problem|issue|fail|error|bad|poor|unhelpful|reject|crash"
    r"|لم أحصل|لا توجد|معقد|مرتفع|لم يكن"
)
POSITIVE_SIGNALS = re.compile(
    r"excellent|great|fast|ممتاز|رائع|سهل|محترف|سريع|good|helpful|professional"
)

# Ordered: first match wins
TEXT_CATEGORY_RULES = [
    (re.compile(r"wait|بطيئ|انتظر"), Category.WAITING_TIME, Severity.MEDIUM),
    (re.compile(r"rude|unhelpful|لم يكن متعاون"), Category.EMPLOYEE_CONDUCT, Severity.HIGH),
    (re.compile(r"complex|معقد|صعب"), Category.PROCESS_COMPLEXITY, Severity.MEDIUM),
    (re.compile(r"fee|رسوم|مرتفع"), Category.FEES, Severity.MEDIUM),
    (re.compile(r"system|crash|توقف|app|تطبيق"), Category.DIGITAL_EXPERIENCE, Severity.HIGH),
    (re.compile(r"information|معلومات|واضح"), Category.INFORMATION_CLARITY, Severity.MEDIUM),
]


class HeuristicClassifier:
    """Deterministic classifier used when no external model is configured."""

    def classify(self, feedback: FeedbackInput) -> Classification:
        text = (feedback.feedback_text or "").lower()
        traits = feedback.traits or []
        feedback_type = feedback.feedback_type or ""

        negative = (
            feedback_type == "complaint"
            or len(traits) > 0
            or bool(NEGATIVE_SIGNALS.search(text))
        )
        positive = feedback_type == "compliment" or bool(POSITIVE_SIGNALS.search(text))

        is_complaint = negative and not positive
        if positive:
            sentiment = Sentiment.POSITIVE
        elif is_complaint:
            sentiment = Sentiment.NEGATIVE
        else:
            sentiment = Sentiment.NEUTRAL

        category = Category.OTHER
        severity = Severity.LOW
        if traits:
            primary = traits[0]
            category = TRAIT_TO_CATEGORY.get(primary, Category.SERVICE_QUALITY)
            severity = TRAIT_TO_SEVERITY.get(primary, Severity.MEDIUM)
        elif is_complaint:
            category, severity = Category.SERVICE_QUALITY, Severity.MEDIUM
            for pattern, rule_category, rule_severity in TEXT_CATEGORY_RULES:
                if pattern.search(text):
                    category, severity = rule_category, rule_severity
                    break

        # Many traits escalate severity
        if len(traits) >= 3:
            severity = Severity.HIGH
        if len(traits) >= 4:
            severity = Severity.CRITICAL

        if is_complaint:
            summary = SUMMARIES.get(category, SUMMARIES[Category.OTHER])
        elif positive:
            summary = POSITIVE_SUMMARY
        else:
            summary = NEUTRAL_SUMMARY

        return Classification(
            sentiment=sentiment,
            is_complaint=is_complaint,
            severity=severity if is_complaint else Severity.LOW,
            category=category if is_complaint else Category.OTHER,
            summary=summary,
        )


# =============================================================================
# EXTERNAL CLASSIFIER
# =============================================================================

CLASSIFY_SYSTEM_PROMPT = """You are an AI analyst for government service feedback.
Classify this feedback and return ONLY a JSON object with these fields:
- sentiment: "positive" | "negative" | "neutral"
- is_complaint: boolean
- severity: "low" | "medium" | "high" | "critical"
- category: one of ["service_quality", "employee_conduct", "process_complexity", "accessibility", "waiting_time", "communication", "fees", "digital_experience", "information_clarity", "complaint_handling", "other"]
- summary: one-sentence English summary of the feedback

Handle Arabic and English input. Return JSON only, no markdown fences."""


class ClassificationPayload(BaseModel):
    sentiment: Literal["positive", "negative", "neutral"]
    is_complaint: bool
    severity: Literal["low", "medium", "high", "critical"]
    category: Category
    summary: str


class ExternalClassifier:
    """Classifier backed by the external model; fails closed on bad output."""

    def __init__(self, client: AnthropicClient):
        self.client = client

    def classify(self, feedback: FeedbackInput) -> Classification:
        lines = [
            f"Feedback text: {feedback.feedback_text}",
            f"Entity: {feedback.entity}",
            f"Channel: {feedback.channel}" if feedback.channel else None,
            f"Dislike traits: {', '.join(feedback.traits)}" if feedback.traits else None,
        ]
        raw_text = self.client.complete(
            CLASSIFY_SYSTEM_PROMPT,
            "\n".join(line for line in lines if line),
            max_tokens=512,
        )
        try:
            payload = ClassificationPayload(**json.loads(strip_code_fences(raw_text)))
        except (ValueError, TypeError, SchemaError) as e:
            logger.error(f"External classifier returned unusable output: {e}")
            raise ExternalJudgeError(f"External classifier returned unusable output: {e}")

        return Classification(
            sentiment=Sentiment(payload.sentiment),
            is_complaint=payload.is_complaint,
            severity=Severity(payload.severity),
            category=payload.category,
            summary=payload.summary,
        )
