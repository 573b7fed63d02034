"""
Rule-relevance matching

RelevanceRanker narrows the rulebook to candidates; ViolationResolver
turns candidates into violations via the external judge or the
deterministic policy.
"""
from .relevance import RelevanceRanker, CATEGORY_BOOST_TERMS
from .judge import ExternalJudge, parse_judgment, restrict_to_candidates
from .fallback import DeterministicPolicy, CATEGORY_RULE_MAP
from .resolver import ViolationResolver, should_match_violations

__all__ = [
    "RelevanceRanker",
    "CATEGORY_BOOST_TERMS",
    "ExternalJudge",
    "parse_judgment",
    "restrict_to_candidates",
    "DeterministicPolicy",
    "CATEGORY_RULE_MAP",
    "ViolationResolver",
    "should_match_violations",
]
