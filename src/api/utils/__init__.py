"""Helpers used across the API layer."""
