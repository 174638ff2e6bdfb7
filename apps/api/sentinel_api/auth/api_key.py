"""API key authentication with prefix+digest lookup and role gating."""

import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from sentinel_api.db.session import get_db
from sentinel_api.models import ApiKey
from sentinel_api.security.digest import compute_digest, digests_match

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="x-api-key", auto_error=False)

ROLE_DEVICE = "device"
ROLE_POLICE_OFFICER = "police_officer"
ROLE_STATION_AUTHORITY = "station_authority"
ROLE_COURT_AUTHORITY = "court_authority"
ROLE_JUDGE = "judge"

ROLES = (ROLE_DEVICE, ROLE_POLICE_OFFICER, ROLE_STATION_AUTHORITY, ROLE_COURT_AUTHORITY, ROLE_JUDGE)

KEY_PREFIX_LENGTH = 8


def compute_key_prefix(raw_key: str) -> str:
    """Compute prefix (first 8 chars) of API key."""
    return raw_key[:KEY_PREFIX_LENGTH] if len(raw_key) >= KEY_PREFIX_LENGTH else raw_key


def compute_key_digest(raw_key: str) -> str:
    """Compute HMAC-SHA256 digest of API key."""
    return compute_digest(raw_key, "api_key")


def generate_api_key() -> str:
    return f"ns_{secrets.token_urlsafe(32)}"


def create_api_key(db: Session, role: str, label: Optional[str] = None, **subject) -> tuple[ApiKey, str]:
    """Create an API key for a role; returns the row and the raw key (shown once)."""
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    raw_key = generate_api_key()
    api_key = ApiKey(
        prefix=compute_key_prefix(raw_key),
        digest=compute_key_digest(raw_key),
        label=label,
        role=role,
        **subject,
    )
    db.add(api_key)
    db.flush()
    return api_key, raw_key


def get_api_key(db: Session, raw_key: str) -> Optional[ApiKey]:
    """Resolve an active API key by prefix, then constant-time digest match."""
    if not raw_key or len(raw_key) < KEY_PREFIX_LENGTH:
        return None

    prefix = compute_key_prefix(raw_key)
    digest = compute_key_digest(raw_key)

    candidates = (
        db.query(ApiKey)
        .filter(
            ApiKey.prefix == prefix,
            ApiKey.is_active == True,  # noqa: E712
            ApiKey.revoked_at.is_(None),
        )
        .all()
    )
    for candidate in candidates:
        if digests_match(candidate.digest, digest):
            return candidate
    return None


def require_role(*roles: str):
    """Dependency factory: authenticate x-api-key and require one of roles."""

    def dependency(
        request: Request,
        x_api_key: Optional[str] = Security(api_key_header),
        db: Session = Depends(get_db),
    ) -> ApiKey:
        if not x_api_key:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing API key. Provide x-api-key header.",
            )

        api_key = get_api_key(db, x_api_key)
        if not api_key:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or revoked API key.",
            )

        if api_key.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{api_key.role}' cannot perform this operation.",
            )

        request.state.api_key_id = api_key.id
        logger.info(
            "Authenticated request",
            extra={
                "api_key_id": api_key.id,
                "role": api_key.role,
                "correlation_id": getattr(request.state, "correlation_id", None),
                "path": request.url.path,
            },
        )
        return api_key

    return dependency
