"""
Module: handlers
Description: Package initialization for API endpoint handlers.

This package contains FastAPI route handlers for the tracking service:
- orders: Order hook endpoints called by the store
- logs: Delivery log browsing and pruning

Handlers use dependency injection for the audit log store, the
tracker and settings.
"""

__all__ = []
