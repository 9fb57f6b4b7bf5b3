"""Subscription management presentation layer: HTTP routes, schemas and dependencies."""
