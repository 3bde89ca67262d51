"""Starlette middleware for the gateway API."""
