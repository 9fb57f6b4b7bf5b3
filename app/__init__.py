# 📄 File: app/__init__.py
#
# 🧭 Purpose (Layman Explanation):
# Tells Python that the 'app' folder holds the contributor subscription service and records
# its name and version.
#
# 🧪 Purpose (Technical Summary):
# Application package initialization with version and package metadata for the
# subscription lifecycle and entitlement engine.
#
# 🔗 Dependencies:
# - Python packaging system
#
# 🔄 Connected Modules / Calls From:
# - main.py (application entry point)
# - pyproject.toml (package discovery)

"""
Contributor Subscriptions - Subscription Lifecycle and Entitlement Engine

Backend API selling time-bounded packages to contributors, keeping each
contributor's usage limits in step with its active subscription, and
expiring and reminding on schedule.
"""

__version__ = "1.0.0"
__title__ = "Contributor Subscriptions API"
__description__ = "Subscription lifecycle and entitlement engine"

__all__ = [
    "__version__",
    "__title__",
    "__description__",
]
