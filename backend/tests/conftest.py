"""
Shared fixtures.

Each test gets its own in-memory SQLite database (StaticPool keeps the
single connection alive across sessions) and a controllable clock.
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from compliance_monitor.config import RULES_PATH
from compliance_monitor.database import init_db
from compliance_monitor.models.codec import encode_strings, encode_violations
from compliance_monitor.models.db_models import FeedbackDB
from compliance_monitor.models.domain import Confidence, Violation
from compliance_monitor.services.catalog import RuleCatalog


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 10, 9, 0, 0))


@pytest.fixture(scope="session")
def catalog():
    """The packaged rulebook."""
    return RuleCatalog.from_path(RULES_PATH)


def make_violations(*codes):
    return [
        Violation(code=code, confidence=Confidence.HIGH, explanation=f"Evidence for {code}")
        for code in codes
    ]


@pytest.fixture
def make_feedback(db, clock):
    """Insert a feedback record, analyzed by default."""

    def _make(
        entity_name="Ministry of Interior",
        dislike_comment="I was waiting in the queue for hours",
        traits=("Long waiting time",),
        processed=True,
        severity="high",
        category="waiting_time",
        violations=("2.1.1",),
        is_complaint=True,
    ):
        feedback = FeedbackDB(
            entity_name=entity_name,
            entity_name_ar="وزارة الداخلية",
            channel="Main Service Center",
            feedback_type="complaint",
            traits=encode_strings(list(traits)),
            dislike_comment=dislike_comment,
            submitted_at=clock(),
        )
        if processed:
            feedback.ai_sentiment = "negative" if is_complaint else "positive"
            feedback.ai_is_complaint = is_complaint
            feedback.ai_severity = severity
            feedback.ai_category = category
            feedback.ai_summary = "Citizen experienced excessive waiting times at the service center."
            feedback.ai_code_violations = encode_violations(make_violations(*violations))
            feedback.processed_at = clock()
        db.add(feedback)
        db.commit()
        db.refresh(feedback)
        return feedback

    return _make
