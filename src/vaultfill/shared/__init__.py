"""Shared kernel: exceptions and infrastructure."""
