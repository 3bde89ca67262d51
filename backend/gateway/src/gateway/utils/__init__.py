"""Utility helpers shared across gateway services."""
