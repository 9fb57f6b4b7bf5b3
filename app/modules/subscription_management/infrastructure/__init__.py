"""Subscription management infrastructure: persistence and notification adapters."""
