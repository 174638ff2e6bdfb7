"""Database session for the worker, sharing the API's models."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from sentinel_worker.settings import get_settings

settings = get_settings()

if settings.database_url_computed.startswith("sqlite"):
    engine = create_engine(
        settings.database_url_computed,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        settings.database_url_computed,
        pool_pre_ping=True,
        pool_size=2,
        max_overflow=2,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Yield a session that is closed when the task returns."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
