"""Subscription management domain layer: models, repository interfaces and services."""
