"""Expiration reminder delivery adapters."""
