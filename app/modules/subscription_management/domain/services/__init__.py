"""Subscription management domain services."""
