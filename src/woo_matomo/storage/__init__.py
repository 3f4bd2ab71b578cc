"""
Module: storage
Description: Package initialization for data persistence layer.

This package contains data storage implementations for the tracking service:
- audit_log: DynamoDB audit log of delivery attempts
"""

__all__ = []
