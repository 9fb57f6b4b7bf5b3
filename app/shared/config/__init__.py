# 📄 File: app/shared/config/__init__.py
#
# 🧭 Purpose (Layman Explanation):
# Holds the settings that tell the subscription engine where its database is, when its
# background jobs run and which currencies and payment methods it accepts.
#
# 🧪 Purpose (Technical Summary):
# Configuration package initialization exporting the cached settings factory.
#
# 🔗 Dependencies:
# - settings.py (application settings)
#
# 🔄 Connected Modules / Calls From:
# - app.main (application startup)
# - All modules requiring configuration

from .settings import Settings, get_settings

__all__ = [
    "get_settings",
    "Settings",
]
