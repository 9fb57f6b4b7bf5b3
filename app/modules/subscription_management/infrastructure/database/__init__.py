"""Subscription management persistence adapters."""
