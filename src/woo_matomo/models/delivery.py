"""
Module: delivery.py
Description: Delivery configuration and outcome models.

Key Components:
- DeliveryConfig: Explicit collector configuration passed into every call
- TrackingContext: Ambient request context (page URL, referrer, user)
- DeliveryStatus: Enum of delivery outcomes
- DeliveryOutcome: Result of one delivery attempt (or of skipping it)

Dependencies: pydantic, enum, typing
Author: Order Tracking Team
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from woo_matomo.models.log_entry import LogStatus

MATOMO_ENDPOINT = "matomo.php"


class DeliveryConfig(BaseModel):
    """
    Collector configuration for a single delivery.

    Built fresh for each order event from the current settings; the
    delivery client never reads global configuration itself.

    Attributes:
        collector_base_url: Matomo base URL (without matomo.php)
        site_id: Matomo site identifier, 0 when not configured
        auth_token: Matomo token_auth secret
        tracking_enabled: Master switch for sending events
        timeout_seconds: HTTP timeout for the single POST
        blocking: Wait for the outcome before returning to the caller
    """

    model_config = ConfigDict(frozen=True)

    collector_base_url: str = ""
    site_id: int = Field(default=0, ge=0)
    auth_token: str = Field(default="", repr=False)
    tracking_enabled: bool = True
    timeout_seconds: float = Field(default=5.0, gt=0)
    blocking: bool = True

    def missing_fields(self) -> List[str]:
        """Names of required collector fields that are empty."""
        missing = []
        if not self.collector_base_url:
            missing.append("matomo_url")
        if not self.site_id:
            missing.append("site_id")
        if not self.auth_token:
            missing.append("auth_token")
        return missing

    def is_configured(self) -> bool:
        return not self.missing_fields()

    @property
    def endpoint_url(self) -> str:
        return f"{self.collector_base_url.rstrip('/')}/{MATOMO_ENDPOINT}"


class TrackingContext(BaseModel):
    """Ambient context reported alongside each tracking event."""

    model_config = ConfigDict(frozen=True)

    url: str = ""
    referrer: Optional[str] = None
    user_id: int = Field(default=0, ge=0)


class DeliveryStatus(str, Enum):
    """Possible results of handing an event to the delivery pipeline."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    SKIPPED_UNCONFIGURED = "skipped_unconfigured"
    TRANSPORT_ERROR = "transport_error"
    HTTP_ERROR = "http_error"
    ORDER_NOT_FOUND = "order_not_found"


# Outcomes where an HTTP request was actually issued
_ATTEMPTED = {
    DeliveryStatus.SUCCESS,
    DeliveryStatus.TRANSPORT_ERROR,
    DeliveryStatus.HTTP_ERROR,
}


class DeliveryOutcome(BaseModel):
    """
    Outcome of a delivery.

    Attributes:
        status: Delivery status
        status_code: HTTP status observed, if a response was received
        error_message: Human-readable failure detail
        elapsed_ms: Round trip time of the request, if one was sent
    """

    model_config = ConfigDict(frozen=True)

    status: DeliveryStatus
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    elapsed_ms: Optional[float] = None

    @classmethod
    def skipped(cls) -> "DeliveryOutcome":
        return cls(status=DeliveryStatus.SKIPPED)

    @classmethod
    def unconfigured(cls, missing: List[str]) -> "DeliveryOutcome":
        return cls(
            status=DeliveryStatus.SKIPPED_UNCONFIGURED,
            error_message=f"Missing configuration: {', '.join(missing)}"
        )

    @classmethod
    def order_not_found(cls, order_id: int) -> "DeliveryOutcome":
        return cls(
            status=DeliveryStatus.ORDER_NOT_FOUND,
            error_message=f"Order {order_id} not found"
        )

    @property
    def attempted(self) -> bool:
        return self.status in _ATTEMPTED

    @property
    def succeeded(self) -> bool:
        return self.status == DeliveryStatus.SUCCESS

    @property
    def log_status(self) -> Optional[LogStatus]:
        """Audit log status for attempted deliveries, None otherwise."""
        if not self.attempted:
            return None
        return LogStatus.SUCCESS if self.succeeded else LogStatus.ERROR
