"""
Module: errors.py
Description: Exceptions raised by the order tracking service.

Delivery failures are not exceptions: they are reported through
DeliveryOutcome. These classes cover storage and store-lookup faults.
"""

from typing import Optional


class TrackingError(Exception):
    """Base class for order tracking errors."""


class StorageError(TrackingError):
    """The audit log store could not be read or written."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class OrderLookupError(TrackingError):
    """The store API returned an unusable response for an order."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
