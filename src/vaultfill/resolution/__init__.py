"""Placeholder resolution engine."""
