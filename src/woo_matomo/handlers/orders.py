"""
Module: orders.py
Description: Order hook endpoints called by the store.

Implements the inbound side of the tracker:
- POST /orders/{order_id}/created: a new order was placed
- POST /orders/{order_id}/status: an order changed status

The store only sends the order id (and the status transition); the
order itself is read back through the WooCommerce REST API. Delivery
failures are reported in the response body, never as HTTP errors.

Dependencies: FastAPI, typing, models, tracking
Author: Order Tracking Team
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Response
from fastapi import status as status_codes

from woo_matomo.config.settings import Settings, get_settings
from woo_matomo.handlers.dependencies import get_tracker
from woo_matomo.models.request import OrderEventRequest, StatusChangeRequest
from woo_matomo.models.response import TrackingResponse
from woo_matomo.tracking.tracker import OrderEventTracker, TrackingResult
from woo_matomo.utils.logger import get_logger

router = APIRouter(prefix="/orders", tags=["orders"])
logger = get_logger(__name__)

_MESSAGES = {
    "success": "Event delivered to Matomo",
    "skipped": "Tracking is disabled",
    "skipped_unconfigured": "Matomo connection is not configured",
    "transport_error": "Matomo could not be reached",
    "http_error": "Matomo rejected the event",
    "order_not_found": "Order not found",
}


def _to_response(result: TrackingResult, response: Response) -> TrackingResponse:
    """Map a TrackingResult onto the HTTP response."""
    if result.error:
        status = "error"
        message = "Order event could not be processed"
        error_message = result.error
    elif result.dispatched:
        response.status_code = status_codes.HTTP_202_ACCEPTED
        status = "dispatched"
        message = "Delivery dispatched"
        error_message = None
    else:
        status = result.outcome.status.value
        message = _MESSAGES[status]
        error_message = result.outcome.error_message

    return TrackingResponse(
        order_id=result.order_id,
        event_type=result.event_type,
        status=status,
        log_entry_id=result.log_entry_id,
        error_message=error_message,
        storage_error=result.storage_error,
        message=message
    )


@router.post("/{order_id}/created", response_model=TrackingResponse)
async def track_new_order(
    response: Response,
    order_id: int = Path(..., ge=1, description="WooCommerce order ID"),
    request: Optional[OrderEventRequest] = None,
    tracker: OrderEventTracker = Depends(get_tracker),
    settings: Settings = Depends(get_settings)
) -> TrackingResponse:
    """
    Track a newly created order.

    Example:
        POST /orders/101/created
        {"referrer": "https://shop.example.com/checkout", "user_id": 7}

        Response (200):
        {
            "order_id": 101,
            "event_type": "new_order",
            "status": "success",
            "log_entry_id": 42,
            "error_message": null,
            "storage_error": null,
            "message": "Event delivered to Matomo"
        }
    """
    context = (request or OrderEventRequest()).to_context(settings.site_url)
    result = await tracker.on_new_order(order_id, context)

    logger.info(
        "New order hook handled",
        order_id=order_id,
        dispatched=result.dispatched,
        status=result.outcome.status.value if result.outcome else None
    )
    return _to_response(result, response)


@router.post("/{order_id}/status", response_model=TrackingResponse)
async def track_status_change(
    request: StatusChangeRequest,
    response: Response,
    order_id: int = Path(..., ge=1, description="WooCommerce order ID"),
    tracker: OrderEventTracker = Depends(get_tracker),
    settings: Settings = Depends(get_settings)
) -> TrackingResponse:
    """Track an order status transition."""
    result = await tracker.on_order_status_changed(
        order_id,
        request.old_status,
        request.new_status,
        request.to_context(settings.site_url)
    )

    logger.info(
        "Status change hook handled",
        order_id=order_id,
        old_status=request.old_status,
        new_status=request.new_status,
        dispatched=result.dispatched,
        status=result.outcome.status.value if result.outcome else None
    )
    return _to_response(result, response)
