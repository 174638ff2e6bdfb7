"""NoiseSentinel chain integrity and identifier issuance API."""

__version__ = "1.0.0"
