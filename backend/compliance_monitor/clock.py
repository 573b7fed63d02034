"""Naive-UTC clock shared by services; timestamps are stored without tzinfo."""
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
