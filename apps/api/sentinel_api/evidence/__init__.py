"""Emission reading evidence."""
