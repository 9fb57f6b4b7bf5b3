# 📄 File: app/shared/__init__.py
#
# 🧭 Purpose (Layman Explanation):
# Marks the 'shared' folder as the toolbox every part of the subscription service uses:
# settings, database access, errors, clocks and logging.
#
# 🧪 Purpose (Technical Summary):
# Shared kernel package initialization for configuration, infrastructure and
# cross-cutting concerns used by the subscription management module.
#
# 🔗 Dependencies:
# - Python packaging system
#
# 🔄 Connected Modules / Calls From:
# - app.modules.subscription_management
# - app.background_jobs
# - app.main

"""
Shared Kernel - Common Utilities and Infrastructure

- Configuration management (pydantic-settings)
- Database engine, sessions and units of work
- Exception hierarchy and injectable clock
- Structured logging and calendar helpers
"""

__all__ = []
