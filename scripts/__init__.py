"""Operational scripts (user administration CLI)."""
