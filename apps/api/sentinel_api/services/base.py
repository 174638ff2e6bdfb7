"""Base service class with clock injection."""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from sentinel_api.settings import Settings, get_settings


def utcnow() -> datetime:
    """Naive UTC now, matching stored timestamps."""
    return datetime.utcnow()


class BaseService:
    """Base service holding the session, settings and clock."""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize service."""
        self.db = db
        self.settings = settings or get_settings()
        self.clock = clock or utcnow

    def now(self) -> datetime:
        return self.clock()
