"""FastAPI application exposing the Cashfree mandate gateway."""
