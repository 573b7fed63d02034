"""
Deterministic Violation Policy

Fixed category -> violation templates used when no external judge is
configured. Higher severity flags more templates; confidence follows
severity.
"""
from typing import Dict, List

from ...models.domain import Confidence, MatchInput, Severity, Violation


DEFAULT_CATEGORY = "service_quality"

# Ordered templates per category
CATEGORY_RULE_MAP: Dict[str, List[Dict[str, str]]] = {
    "waiting_time": [
        {"code": "2.1.1", "explanation": "Service performance monitoring standards require tracking and minimizing customer wait times. Excessive waiting indicates non-compliance with SLA requirements."},
        {"code": "1.7.1", "explanation": "Instant digital support within service channel is required to reduce unnecessary in-person wait times and provide real-time queue management."},
    ],
    "employee_conduct": [
        {"code": "2.3.1", "explanation": "Customer experience management standards require professional and courteous staff interactions at all service touchpoints."},
        {"code": "2.2.1", "explanation": "Customer feedback management standards require that entities address and act on feedback about staff conduct."},
    ],
    "process_complexity": [
        {"code": "1.5.1", "explanation": "Simplifying customer journey standards require entities to minimize the number of steps and documents required from customers."},
        {"code": "1.2.1", "explanation": "Form quality and validation features must ensure forms are clear, simple, and guide the customer through completion without unnecessary complexity."},
    ],
    "accessibility": [
        {"code": "1.1.1", "explanation": "All customer authentication and service steps must meet WCAG 2.2 accessibility standards and provide clear error messages."},
        {"code": "1.3.1", "explanation": "Language consistency in user journey requires services to be fully available in both Arabic and English."},
    ],
    "communication": [
        {"code": "2.4.1", "explanation": "Proactive communication standards require entities to keep customers informed about service status and any changes."},
        {"code": "1.7.3", "explanation": "Service channels must provide timely notifications and updates to customers about their service requests."},
    ],
    "fees": [
        {"code": "1.6.1", "explanation": "Clarity of fees, payment, and receipts standards require all service fees to be clearly displayed before the customer commits to the service."},
    ],
    "digital_experience": [
        {"code": "1.7.1", "explanation": "Instant digital support within service channel requires reliable and responsive digital service delivery."},
        {"code": "1.8.1", "explanation": "Channel effectiveness standards require digital services to function properly even in low connectivity environments."},
        {"code": "1.7.7", "explanation": "Digital service channels must maintain uptime standards and gracefully handle system errors without losing customer data."},
    ],
    "information_clarity": [
        {"code": "1.4.1", "explanation": "Digital literacy and help content standards require clear, accessible guidance to be available for all services."},
        {"code": "1.9.1", "explanation": "Content consistency and national design system standards require uniform, clear information across all service channels."},
    ],
    "complaint_handling": [
        {"code": "2.2.1", "explanation": "Customer feedback management requires entities to acknowledge, track, and resolve all complaints within defined timelines."},
        {"code": "2.1.4", "explanation": "Service performance monitoring must include tracking of complaint resolution rates and response times."},
    ],
    "service_quality": [
        {"code": "2.1.1", "explanation": "Service performance monitoring standards require entities to maintain measurable quality benchmarks for all services."},
        {"code": "2.3.1", "explanation": "Customer experience management requires consistent, high-quality service delivery across all channels."},
    ],
}

# Severity -> number of templates flagged
SEVERITY_VIOLATION_COUNT = {
    Severity.CRITICAL.value: 4,
    Severity.HIGH.value: 3,
}
DEFAULT_VIOLATION_COUNT = 2

HIGH_CONFIDENCE_SEVERITIES = {Severity.CRITICAL.value, Severity.HIGH.value}


class DeterministicPolicy:
    """Rule-based generation of plausible violations."""

    def __init__(self, rule_map: Dict[str, List[Dict[str, str]]] = None):
        self.rule_map = rule_map if rule_map is not None else CATEGORY_RULE_MAP

    def templates_for(self, category: str) -> List[Dict[str, str]]:
        return self.rule_map.get(category) or self.rule_map.get(DEFAULT_CATEGORY, [])

    def generate(self, match_input: MatchInput) -> List[Violation]:
        category = str(getattr(match_input.category, "value", match_input.category))
        severity = str(getattr(match_input.severity, "value", match_input.severity))

        max_violations = SEVERITY_VIOLATION_COUNT.get(severity, DEFAULT_VIOLATION_COUNT)
        confidence = Confidence.HIGH if severity in HIGH_CONFIDENCE_SEVERITIES else Confidence.MEDIUM

        return [
            Violation(code=t["code"], confidence=confidence, explanation=t["explanation"])
            for t in self.templates_for(category)[:max_violations]
        ]
