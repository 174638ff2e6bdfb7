"""Keyed digests for secrets stored at rest (API keys, OTP codes, access tokens)."""

import hashlib
import hmac
from typing import Optional

from sentinel_api.settings import get_settings


def compute_digest(raw_value: str, purpose: str, secret: Optional[str] = None) -> str:
    """HMAC-SHA256 of raw_value under the service secret, domain-separated by purpose."""
    key = (secret or get_settings().secret_key).encode()
    message = f"{purpose}:{raw_value}".encode()
    return hmac.new(key, message, hashlib.sha256).hexdigest()


def digests_match(stored: Optional[str], computed: str) -> bool:
    """Constant-time comparison of digests."""
    return bool(stored) and hmac.compare_digest(stored, computed)
