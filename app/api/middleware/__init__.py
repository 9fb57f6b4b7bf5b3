# 📄 File: app/api/middleware/__init__.py
# 🧭 Purpose (Layman Explanation):
# Collects the checks every request passes through before reaching an endpoint.
# 🧪 Purpose (Technical Summary):
# Middleware package exports and the shared path-exclusion helper.
# 🔗 Dependencies:
# None
# 🔄 Connected Modules / Calls From:
# app.main (middleware registration)

"""
API Middleware Package

Middleware:
    - RequestLoggingMiddleware: request id propagation, structured request/response logs
"""

# Paths that are not worth a log line per request
EXCLUDED_PATHS = {
    "logging": ["/health/live", "/docs", "/redoc", "/openapi.json"],
}


def should_exclude_path(middleware_name: str, path: str) -> bool:
    """Check whether ``path`` is excluded for the given middleware."""
    return any(path.startswith(prefix) for prefix in EXCLUDED_PATHS.get(middleware_name, []))


from .logging import RequestLoggingMiddleware  # noqa: E402

__all__ = ["RequestLoggingMiddleware", "should_exclude_path"]
