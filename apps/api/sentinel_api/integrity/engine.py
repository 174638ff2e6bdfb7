"""Signature engine over canonical record forms."""

import base64
import binascii
import logging
from functools import lru_cache
from typing import Optional

from sentinel_api.integrity.canonical import challan_payload, reading_payload
from sentinel_api.integrity.signer import Signer, get_signer

logger = logging.getLogger(__name__)


class SignatureEngine:
    """Sign and verify canonical payloads with a pluggable signer.

    Signatures are base64 strings. Verification never raises on a mismatch or
    a malformed signature; it returns False and leaves reporting to the caller.
    """

    def __init__(self, signer: Optional[Signer] = None):
        """Initialize signature engine."""
        self.signer = signer or get_signer()

    @property
    def algorithm(self) -> str:
        return self.signer.algorithm

    @property
    def key_id(self) -> str:
        return self.signer.get_key_id()

    @property
    def deterministic(self) -> bool:
        return self.signer.deterministic

    def sign(self, payload: bytes) -> str:
        """Sign payload, returning a base64 signature."""
        return base64.b64encode(self.signer.sign(payload)).decode("ascii")

    def verify(self, payload: bytes, signature: Optional[str]) -> bool:
        """Check a base64 signature against payload."""
        if not signature:
            return False
        try:
            raw = base64.b64decode(signature.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError, ValueError):
            return False
        return self.signer.verify(payload, raw)

    def sign_reading(self, reading) -> str:
        return self.sign(reading_payload(reading))

    def verify_reading(self, reading) -> bool:
        """Recompute the reading's canonical form and verify its stored signature."""
        if reading.signature_alg and reading.signature_alg != self.algorithm:
            logger.warning(
                f"Reading {reading.id} signed with {reading.signature_alg}, engine uses {self.algorithm}",
                extra={"reading_id": reading.id},
            )
            return False
        return self.verify(reading_payload(reading), reading.signature_value)

    def sign_challan(self, challan, reading_signature: Optional[str]) -> str:
        return self.sign(challan_payload(challan, reading_signature))

    def verify_challan(self, challan, reading_signature: Optional[str]) -> bool:
        return self.verify(challan_payload(challan, reading_signature), challan.signature_value)


@lru_cache()
def get_signature_engine() -> SignatureEngine:
    """Get cached signature engine for the configured provider."""
    return SignatureEngine()
