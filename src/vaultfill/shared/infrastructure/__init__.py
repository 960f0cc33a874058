"""Shared infrastructure: configuration, logging, resilience."""
