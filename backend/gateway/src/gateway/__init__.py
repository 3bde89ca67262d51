"""Cashfree mandate gateway: onboarding, subscription mandates and webhook reconciliation."""

__version__ = "0.1.0"
