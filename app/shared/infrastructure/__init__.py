"""
Infrastructure layer package for the subscription engine.
Provides the async database engine, session manager and units of work.
"""

__all__ = []
