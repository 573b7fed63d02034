"""
Relevance Ranker

Narrows a complaint down to a bounded, ordered set of candidate rules.
Deterministic: same (text, category, traits) always yields the same list.

Scoring per rule:
    3 x rule keywords found in complaint text + category + traits
  + 2 x category boost terms found in the rule's description/category/keywords
  + 1 if the rule is high impact

Complaints with no rule keyword and no boost term in their own text
yield no candidates. Otherwise every rule scoring above zero is kept;
ties keep catalog order.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from ...config import CANDIDATE_LIMIT
from ...models.domain import ImpactLevel, Rule
from ..catalog import RuleCatalog

logger = logging.getLogger(__name__)


KEYWORD_WEIGHT = 3
BOOST_WEIGHT = 2
HIGH_IMPACT_BONUS = 1

# Category -> terms that raise rules describing the same concern
CATEGORY_BOOST_TERMS: Dict[str, List[str]] = {
    "waiting_time": ["waiting", "time", "queue", "delay", "speed", "SLA"],
    "employee_conduct": ["staff", "employee", "behavior", "conduct", "training", "professional"],
    "process_complexity": ["process", "journey", "simplif", "form", "step", "requirement"],
    "accessibility": ["accessibility", "WCAG", "disability", "language", "translation"],
    "communication": ["communication", "notification", "update", "inform", "response"],
    "fees": ["fee", "payment", "cost", "receipt", "charge", "refund"],
    "digital_experience": ["digital", "website", "app", "system", "online", "channel", "technical"],
    "information_clarity": ["information", "content", "clarity", "guide", "help", "FAQ"],
    "complaint_handling": ["complaint", "feedback", "grievance", "escalation", "resolution", "follow"],
    "service_quality": ["service", "quality", "standard", "performance", "monitoring"],
}


@dataclass(frozen=True)
class ScoredRule:
    rule: Rule
    score: int
    keyword_hits: int
    boost_hits: int


def _count_present(terms: Iterable[str], haystack: str) -> int:
    return sum(1 for term in terms if term and term.lower() in haystack)


class RelevanceRanker:
    """Scores catalog rules against a complaint and returns the shortlist."""

    def __init__(self, catalog: RuleCatalog, limit: int = CANDIDATE_LIMIT):
        self.catalog = catalog
        self.limit = limit

    def boost_terms(self, category: str) -> List[str]:
        return CATEGORY_BOOST_TERMS.get(str(getattr(category, "value", category)), [])

    def score_rules(
        self,
        complaint_text: str,
        category: str,
        traits: Optional[Sequence[str]] = None,
    ) -> List[ScoredRule]:
        """Score every catalog rule, keeping non-zero scores in catalog order."""
        traits = list(traits or [])
        evidence_text = " ".join([complaint_text or "", *traits]).lower()
        if not evidence_text.strip():
            return []

        category_value = str(getattr(category, "value", category) or "")
        boost_terms = self.boost_terms(category_value)
        rules = self.catalog.list_all()

        # Nothing in the complaint itself points at any rule
        mentions_boost = _count_present(boost_terms, evidence_text) > 0
        mentions_keyword = any(_count_present(r.keywords, evidence_text) for r in rules)
        if not (mentions_boost or mentions_keyword):
            return []

        match_text = " ".join([complaint_text or "", category_value, *traits]).lower()
        scored: List[ScoredRule] = []
        for rule in rules:
            rule_text = " ".join([rule.description, rule.category, *rule.keywords]).lower()
            keyword_hits = _count_present(rule.keywords, match_text)
            boost_hits = _count_present(boost_terms, rule_text)
            score = KEYWORD_WEIGHT * keyword_hits + BOOST_WEIGHT * boost_hits
            if rule.impact_level == ImpactLevel.HIGH:
                score += HIGH_IMPACT_BONUS
            if score == 0:
                continue
            scored.append(ScoredRule(rule, score, keyword_hits, boost_hits))
        return scored

    def rank(
        self,
        complaint_text: str,
        category: str,
        traits: Optional[Sequence[str]] = None,
    ) -> List[Rule]:
        """
        Return up to `limit` candidate rules, highest score first.

        Returns [] for empty or keyword-free complaints.
        """
        scored = self.score_rules(complaint_text, category, traits)
        # sorted() is stable, so equal scores keep catalog order
        ranked = sorted(scored, key=lambda s: s.score, reverse=True)[: self.limit]
        logger.info(
            f"Ranked {len(scored)} scoring rules for category={category}, "
            f"returning {len(ranked)} candidates"
        )
        return [s.rule for s in ranked]
