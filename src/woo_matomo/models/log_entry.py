"""
Module: log_entry.py
Description: Audit log entry models.

Defines the immutable LogEntry written once per delivery attempt and
the LogPage returned by paginated reads.

Dependencies: pydantic, datetime, enum, math, typing
Author: Order Tracking Team
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    """Order lifecycle events forwarded to Matomo."""

    NEW_ORDER = "new_order"
    STATUS_CHANGE = "status_change"


class LogStatus(str, Enum):
    """Result recorded for a delivery attempt."""

    SUCCESS = "success"
    ERROR = "error"


class LogEntry(BaseModel):
    """
    One recorded delivery attempt.

    Attributes:
        id: Monotonic identifier assigned by the store
        order_id: WooCommerce order the event belongs to
        event_type: new_order or status_change
        event_payload: Structured snapshot of the tracking event
        status: success or error
        error_message: Failure detail, None on success
        created_at: UTC time the entry was written
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1)
    order_id: int
    event_type: EventType
    event_payload: Dict[str, Any]
    status: LogStatus
    error_message: Optional[str] = None
    created_at: datetime


class LogPage(BaseModel):
    """A page of log entries, newest first."""

    entries: List[LogEntry]
    total_count: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)

    @property
    def total_pages(self) -> int:
        if self.total_count <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)
