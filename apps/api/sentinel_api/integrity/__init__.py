"""Evidence signing and verification."""
