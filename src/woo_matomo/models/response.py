"""
Module: response.py
Description: Response models for the order hook and log endpoints.

Key Components:
- TrackingResponse: Outcome of an order hook call
- LogPageResponse: One page of delivery log entries
- PruneResponse: Result of a retention prune run

Dependencies: pydantic, typing
Author: Order Tracking Team
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from woo_matomo.models.log_entry import EventType, LogEntry, LogPage


class TrackingResponse(BaseModel):
    """
    Response to an order hook.

    Attributes:
        order_id: Order the event was raised for
        event_type: new_order or status_change
        status: Delivery status, or "dispatched" for background deliveries
        log_entry_id: Audit log entry id when one was written
        error_message: Delivery failure detail
        storage_error: Audit log write failure detail
        message: Human-readable summary
    """

    order_id: int
    event_type: EventType
    status: str
    log_entry_id: Optional[int] = None
    error_message: Optional[str] = None
    storage_error: Optional[str] = None
    message: str


class LogPageResponse(BaseModel):
    """Paginated delivery log listing, newest first."""

    entries: List[LogEntry]
    total_count: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)
    page: int
    per_page: int

    @classmethod
    def from_page(cls, page: LogPage) -> "LogPageResponse":
        return cls(
            entries=page.entries,
            total_count=page.total_count,
            total_pages=page.total_pages,
            page=page.page,
            per_page=page.page_size
        )


class PruneResponse(BaseModel):
    """Result of deleting expired log entries."""

    deleted_count: int = Field(..., ge=0)
    retention_days: int
