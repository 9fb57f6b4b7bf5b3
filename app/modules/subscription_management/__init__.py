"""Contributor subscription management: packages, subscriptions and entitlements."""
