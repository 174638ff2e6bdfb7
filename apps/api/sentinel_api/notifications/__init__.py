"""Outbound citizen notifications."""
