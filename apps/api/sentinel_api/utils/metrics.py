"""Prometheus metrics."""

from prometheus_client import Counter, Histogram

# Evidence metrics
readings_signed = Counter(
    "sentinel_readings_signed_total",
    "Total emission readings signed",
    ["algorithm"],
)

integrity_violations = Counter(
    "sentinel_integrity_violations_total",
    "Signature mismatches detected on stored records",
    ["record_type"],
)

# Issuance metrics
sequences_issued = Counter(
    "sentinel_sequences_issued_total",
    "Identifiers issued by the sequence allocator",
    ["scope_kind"],
)

allocation_retries = Counter(
    "sentinel_allocation_retries_total",
    "Unit-of-work retries caused by allocator contention",
    ["scope_kind"],
)

allocation_duration = Histogram(
    "sentinel_allocation_duration_seconds",
    "Duration of a linked issuance including retries",
    ["scope_kind"],
)

chain_conflicts = Counter(
    "sentinel_chain_conflicts_total",
    "Conflicts raised by chain operations",
    ["code"],
)

# Public status metrics
otp_events = Counter(
    "sentinel_otp_events_total",
    "Public status OTP outcomes",
    ["event"],
)
