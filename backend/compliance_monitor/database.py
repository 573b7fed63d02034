"""
Compliance Monitor - Database Configuration
SQLAlchemy engine, session factory and declarative base
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import DATABASE_URL


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # Sessions are handed across FastAPI worker threads
        return {"connect_args": {"check_same_thread": False}}
    return {}


# Create engine
engine = create_engine(DATABASE_URL, echo=False, **_engine_kwargs(DATABASE_URL))

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def get_db():
    """Dependency for FastAPI - yields database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Initialize database - create all tables."""
    # Register models on Base.metadata
    from .models import db_models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
