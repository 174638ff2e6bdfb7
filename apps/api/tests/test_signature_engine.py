"""Tests for the signature engine and canonical forms."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from sentinel_api.integrity.canonical import canonical_reading, quantize, reading_payload
from sentinel_api.integrity.engine import SignatureEngine
from sentinel_api.integrity.signer import HMAC_SHA256, RSA_PSS_SHA256, HmacSigner, RsaPssSigner
from sentinel_api.models import Challan, EmissionReading


def make_reading(engine: SignatureEngine, **overrides) -> EmissionReading:
    fields = {
        "device_id": 7,
        "co": None,
        "co2": Decimal("412.50"),
        "hc": None,
        "nox": None,
        "sound_level_dba": Decimal("91.46"),
        "captured_at": datetime(2025, 6, 1, 12, 0, 0),
    }
    fields.update(overrides)
    reading = EmissionReading(
        signature_alg=engine.algorithm,
        signature_key_id=engine.key_id,
        **fields,
    )
    reading.signature_value = engine.sign_reading(reading)
    return reading


@pytest.fixture
def rsa_engine(tmp_path) -> SignatureEngine:
    return SignatureEngine(RsaPssSigner(key_path=str(tmp_path / "signing_key.pem")))


def test_canonical_reading_format():
    """Fields are version-tagged, pipe-joined, quantized and NULL-filled."""
    payload = canonical_reading(
        7, None, "412.5", None, None, Decimal("91.456"), datetime(2025, 6, 1, 12, 0, 0)
    )
    assert payload == b"v1|7|NULL|412.50|NULL|NULL|91.46|2025-06-01T12:00:00.000000Z"


def test_canonical_reading_normalizes_timezone():
    naive_utc = datetime(2025, 6, 1, 12, 0, 0)
    karachi = datetime(2025, 6, 1, 17, 0, 0, tzinfo=timezone(timedelta(hours=5)))
    assert canonical_reading(1, None, None, None, None, 80, naive_utc) == canonical_reading(
        1, None, None, None, None, 80, karachi
    )


def test_quantize_rounds_half_up():
    assert quantize("85.005") == Decimal("85.01")
    assert quantize(None) is None


def test_hmac_round_trip(signature_engine):
    payload = b"v1|evidence"
    signature = signature_engine.sign(payload)
    assert signature_engine.verify(payload, signature)
    assert signature_engine.algorithm == HMAC_SHA256
    assert signature_engine.key_id == "test-hmac-key"


def test_hmac_is_deterministic(signature_engine):
    assert signature_engine.deterministic
    assert signature_engine.sign(b"same") == signature_engine.sign(b"same")


def test_verify_detects_payload_tampering(signature_engine):
    signature = signature_engine.sign(b"v1|7|91.46")
    assert not signature_engine.verify(b"v1|7|91.47", signature)


def test_verify_rejects_malformed_signatures(signature_engine):
    assert not signature_engine.verify(b"payload", None)
    assert not signature_engine.verify(b"payload", "")
    assert not signature_engine.verify(b"payload", "not base64!!")


def test_different_secret_fails_verification(signature_engine):
    other = SignatureEngine(HmacSigner(secret="another-secret"))
    assert not other.verify(b"payload", signature_engine.sign(b"payload"))


SIGNED_FIELD_CHANGES = [
    ("device_id", 8),
    ("co", Decimal("0.01")),
    ("co2", Decimal("412.51")),
    ("hc", Decimal("3.20")),
    ("nox", Decimal("0.75")),
    ("sound_level_dba", Decimal("70.00")),
    ("captured_at", datetime(2025, 6, 1, 12, 0, 0, 1)),
]


@pytest.mark.parametrize("field,value", SIGNED_FIELD_CHANGES, ids=[f for f, _ in SIGNED_FIELD_CHANGES])
def test_changing_any_signed_field_breaks_hmac_signature(signature_engine, field, value):
    reading = make_reading(signature_engine)
    assert signature_engine.verify_reading(reading)

    setattr(reading, field, value)
    assert not signature_engine.verify_reading(reading)


@pytest.mark.parametrize("field,value", SIGNED_FIELD_CHANGES, ids=[f for f, _ in SIGNED_FIELD_CHANGES])
def test_changing_any_signed_field_breaks_rsa_signature(rsa_engine, field, value):
    reading = make_reading(rsa_engine)

    setattr(reading, field, value)
    assert not rsa_engine.verify_reading(reading)


def test_unsigned_classification_does_not_affect_signature(signature_engine):
    reading = make_reading(signature_engine, ml_classification="modified_silencer")
    reading.ml_classification = "stock_exhaust"
    assert signature_engine.verify_reading(reading)


def test_reading_with_other_algorithm_is_not_verified(signature_engine, rsa_engine):
    reading = make_reading(signature_engine)
    assert not rsa_engine.verify_reading(reading)


def test_rsa_round_trip(rsa_engine):
    reading = make_reading(rsa_engine)
    assert rsa_engine.algorithm == RSA_PSS_SHA256
    assert not rsa_engine.deterministic
    assert rsa_engine.verify_reading(reading)
    assert rsa_engine.sign(b"x") != rsa_engine.sign(b"x")


def test_rsa_key_is_persisted(tmp_path):
    key_path = str(tmp_path / "signing_key.pem")
    first = SignatureEngine(RsaPssSigner(key_path=key_path))
    signature = first.sign(b"payload")

    reloaded = SignatureEngine(RsaPssSigner(key_path=key_path))
    assert reloaded.verify(b"payload", signature)
    assert "BEGIN PUBLIC KEY" in reloaded.signer.get_public_key_pem()


def test_challan_signature_covers_reading_signature(signature_engine):
    reading = make_reading(signature_engine)
    challan = Challan(
        officer_id=1,
        accused_id=2,
        vehicle_id=3,
        violation_id=4,
        emission_reading_id=10,
        issued_at=datetime(2025, 6, 1, 12, 0, 0),
        due_at=datetime(2025, 7, 1, 12, 0, 0),
    )
    challan.signature_value = signature_engine.sign_challan(challan, reading.signature_value)

    assert signature_engine.verify_challan(challan, reading.signature_value)
    assert not signature_engine.verify_challan(challan, signature_engine.sign(b"other reading"))

    challan.violation_id = 5
    assert not signature_engine.verify_challan(challan, reading.signature_value)


def test_payload_recomputes_from_row(signature_engine):
    reading = make_reading(signature_engine, co=None, nox=Decimal("0.5"))
    assert reading_payload(reading).split(b"|")[5] == b"0.50"
