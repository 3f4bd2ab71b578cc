"""
Module: request.py
Description: Request models for the order hook and log endpoints.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from woo_matomo.models.delivery import TrackingContext


class OrderEventRequest(BaseModel):
    """
    Ambient context sent by the store with an order hook.

    All fields are optional; the page URL defaults to the configured
    store URL and the user to anonymous.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    url: Optional[str] = Field(default=None, max_length=2048, description="Page URL")
    referrer: Optional[str] = Field(default=None, max_length=2048, description="Referrer URL")
    user_id: int = Field(default=0, ge=0, description="Acting WordPress user, 0 if anonymous")

    def to_context(self, default_url: str = "") -> TrackingContext:
        return TrackingContext(
            url=self.url or default_url,
            referrer=self.referrer or None,
            user_id=self.user_id
        )


class StatusChangeRequest(OrderEventRequest):
    """Order status transition reported by the store."""

    old_status: str = Field(..., min_length=1, max_length=50, description="Previous order status")
    new_status: str = Field(..., min_length=1, max_length=50, description="New order status")


class PruneRequest(BaseModel):
    """Retention override for a manual prune run."""

    retention_days: Optional[int] = Field(
        default=None,
        ge=1,
        le=365,
        description="Days to keep; the configured retention when omitted"
    )
