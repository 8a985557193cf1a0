from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
import uuid
from datetime import datetime, timezone
from typing import Optional
from .config import settings

# SQLite needs a thread-agnostic connection for the test client
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

# Create database engine
engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_recycle=300,
    connect_args=connect_args
)

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class for models
Base = declarative_base()

# Dependency to get database session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Custom UUID type for PostgreSQL
def generate_uuid():
    return uuid.uuid4()


def utcnow() -> datetime:
    """Naive UTC timestamp used for every application-side time column."""
    return datetime.utcnow()


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a timestamp read back from the database to naive UTC.

    PostgreSQL returns timezone-aware values for ``timestamptz`` columns while
    SQLite hands back naive ones; comparisons against ``utcnow()`` need both
    sides in the same shape.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
