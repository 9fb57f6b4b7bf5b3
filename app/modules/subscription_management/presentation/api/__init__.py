"""Subscription management API, organized by version."""
