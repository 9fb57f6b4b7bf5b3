"""Subscription management application layer: commands, queries and their handlers."""
