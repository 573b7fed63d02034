"""
Versioned encode/decode for structured JSON columns.

Lists are stored as {"schema_version": N, "items": [...]}. Decoding
accepts bare lists and JSON strings written before the envelope existed,
and skips entries that cannot be parsed.
"""
import json
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from .domain import Violation

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

T = TypeVar("T")


def encode_items(items: List[Any]) -> Dict[str, Any]:
    return {"schema_version": SCHEMA_VERSION, "items": list(items)}


def _unwrap(raw: Any, column: str) -> List[Any]:
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning(f"Unparsable {column} payload skipped")
            return []
    if isinstance(raw, dict):
        version = raw.get("schema_version")
        if version != SCHEMA_VERSION:
            logger.warning(f"Unsupported {column} schema_version={version}, skipping payload")
            return []
        raw = raw.get("items", [])
    if not isinstance(raw, list):
        logger.warning(f"Unexpected {column} payload type {type(raw).__name__}, skipping")
        return []
    return raw


def _decode_items(raw: Any, column: str, parse: Callable[[Any], T]) -> List[T]:
    decoded: List[T] = []
    for index, item in enumerate(_unwrap(raw, column)):
        try:
            decoded.append(parse(item))
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Skipping malformed {column} entry at index {index}")
    return decoded


# =============================================================================
# VIOLATIONS
# =============================================================================

def encode_violations(violations: List[Violation]) -> Dict[str, Any]:
    return encode_items([v.to_dict() for v in violations])


def decode_violations(raw: Any, column: str = "violations") -> List[Violation]:
    return _decode_items(raw, column, Violation.from_dict)


# =============================================================================
# STRING LISTS (evidence files, traits)
# =============================================================================

def _parse_string(item: Any) -> str:
    if not isinstance(item, str):
        raise TypeError("expected string")
    return item


def encode_strings(values: Optional[List[str]]) -> Dict[str, Any]:
    return encode_items([str(v) for v in (values or [])])


def decode_strings(raw: Any, column: str = "values") -> List[str]:
    return _decode_items(raw, column, _parse_string)
