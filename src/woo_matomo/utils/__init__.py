"""
Module: utils
Description: Package initialization for utility functions.

Current utilities:
- logger: Structured logging configuration and helpers
- metrics: CloudWatch custom metrics
"""

__all__ = []
