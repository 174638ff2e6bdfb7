"""NoiseSentinel background worker."""
