"""Subscription management domain models."""
