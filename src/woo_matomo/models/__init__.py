"""
Module: models
Description: Package initialization for Pydantic data models.

This package contains the data models of the tracking service:
- TrackingEvent: Order event mapped onto Matomo event fields
- DeliveryConfig / DeliveryOutcome: Collector settings and delivery results
- LogEntry / LogPage: Audit log records
- OrderSnapshot: Order data supplied by an OrderLookup

All models are exported here for convenient importing.
"""

from .delivery import DeliveryConfig, DeliveryOutcome, DeliveryStatus, TrackingContext
from .event import TrackingEvent, TrackingItem
from .log_entry import EventType, LogEntry, LogPage, LogStatus
from .order import OrderItemSnapshot, OrderSnapshot

__all__ = [
    "DeliveryConfig",
    "DeliveryOutcome",
    "DeliveryStatus",
    "TrackingContext",
    "TrackingEvent",
    "TrackingItem",
    "EventType",
    "LogEntry",
    "LogPage",
    "LogStatus",
    "OrderItemSnapshot",
    "OrderSnapshot",
]
