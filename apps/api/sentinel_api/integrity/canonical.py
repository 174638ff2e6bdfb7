"""Canonical byte forms of signed records.

Fields are pipe-joined in a fixed order behind a version tag. Decimals are
quantized to two places and absent values render as ``NULL``. Timestamps are
normalized to naive UTC and rendered ISO-8601 with microseconds and ``Z``, so a
stored row recomputes to the same bytes it was signed over.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

CANONICAL_VERSION = "v1"
NULL = "NULL"
TWO_PLACES = Decimal("0.01")


def quantize(value) -> Optional[Decimal]:
    """Quantize a numeric value to two decimal places."""
    if value is None:
        return None
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def normalize_timestamp(value: datetime) -> datetime:
    """Convert to naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def format_decimal(value) -> str:
    q = quantize(value)
    return NULL if q is None else f"{q:.2f}"


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return NULL
    return normalize_timestamp(value).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _join(*fields: str) -> bytes:
    return "|".join((CANONICAL_VERSION,) + fields).encode("utf-8")


def canonical_reading(
    device_id: int,
    co,
    co2,
    hc,
    nox,
    sound_level_dba,
    captured_at: datetime,
) -> bytes:
    """Canonical bytes of an emission reading."""
    return _join(
        str(device_id),
        format_decimal(co),
        format_decimal(co2),
        format_decimal(hc),
        format_decimal(nox),
        format_decimal(sound_level_dba),
        format_timestamp(captured_at),
    )


def reading_payload(reading) -> bytes:
    """Canonical bytes recomputed from a stored EmissionReading row."""
    return canonical_reading(
        reading.device_id,
        reading.co,
        reading.co2,
        reading.hc,
        reading.nox,
        reading.sound_level_dba,
        reading.captured_at,
    )


def challan_payload(challan, reading_signature: Optional[str]) -> bytes:
    """Canonical bytes of a challan's immutable fields.

    The linked reading's signature is folded in so the challan also attests
    the evidence it was filed on.
    """
    reading_id = challan.emission_reading_id
    return _join(
        str(challan.officer_id),
        str(challan.accused_id),
        str(challan.vehicle_id),
        str(challan.violation_id),
        NULL if reading_id is None else str(reading_id),
        format_timestamp(challan.issued_at),
        format_timestamp(challan.due_at),
        reading_signature or NULL,
    )
