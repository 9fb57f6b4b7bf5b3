# 📄 File: app/api/__init__.py
# 🧭 Purpose (Layman Explanation):
# Marks the api folder as a package holding the versioned web endpoints and request middleware.
# 🧪 Purpose (Technical Summary):
# Package initialization for the HTTP layer (v1 routers, health checks, request logging middleware).
# 🔗 Dependencies:
# None (package initialization)
# 🔄 Connected Modules / Calls From:
# app.main
