"""Evidentiary chain: identifier issuance and 1:1 linkage."""
