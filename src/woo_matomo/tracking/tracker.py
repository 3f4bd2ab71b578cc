"""
Module: tracker.py
Description: Order event entry points for Matomo tracking.

Handles the two store hooks (new order, order status change): reloads
the delivery configuration, resolves the order, builds the tracking
event, delivers it and records the attempt in the audit log.

Nothing raised while tracking escapes these entry points: a failed
delivery becomes an error entry in the audit log and a failed audit
write is reported in the returned TrackingResult.

Key Components:
- OrderEventTracker: on_new_order(), on_order_status_changed()
- TrackingResult: What happened to one order event
- Fire-and-forget mode: delivery runs in a background task
- drain_background_deliveries(): await outstanding background deliveries

Dependencies: asyncio, structlog, pydantic
Author: Order Tracking Team
"""

import asyncio
from typing import Callable, Optional, Set

import structlog
from pydantic import BaseModel

from woo_matomo.config.settings import load_delivery_config
from woo_matomo.delivery.matomo import MatomoDeliveryClient
from woo_matomo.errors import StorageError
from woo_matomo.models.delivery import (
    DeliveryConfig,
    DeliveryOutcome,
    DeliveryStatus,
    TrackingContext,
)
from woo_matomo.models.event import TrackingEvent
from woo_matomo.models.log_entry import EventType
from woo_matomo.models.order import OrderSnapshot
from woo_matomo.orders.lookup import OrderLookup
from woo_matomo.storage.audit_log import AuditLogStore
from woo_matomo.utils.logger import get_logger
from woo_matomo.utils.metrics import DELIVERY_FAILED, DELIVERY_SUCCEEDED, MetricsClient

logger = get_logger(__name__)

# Strong references to fire-and-forget deliveries until they finish
_background_tasks: Set[asyncio.Task] = set()


class TrackingResult(BaseModel):
    """
    Result of handling one order event.

    Attributes:
        order_id: Order the event was raised for
        event_type: new_order or status_change
        outcome: Delivery outcome; None while a background delivery runs
        dispatched: Delivery was handed to a background task
        log_entry_id: Audit log entry written for the attempt
        storage_error: Why the audit log write failed, if it did
        error: Unexpected failure that aborted handling
    """

    order_id: int
    event_type: EventType
    outcome: Optional[DeliveryOutcome] = None
    dispatched: bool = False
    log_entry_id: Optional[int] = None
    storage_error: Optional[str] = None
    error: Optional[str] = None


class OrderEventTracker:
    """
    Forward order lifecycle events to Matomo and audit each attempt.

    Example:
        >>> tracker = OrderEventTracker(order_lookup=lookup, audit_log=store)
        >>> result = await tracker.on_new_order(101)
        >>> result.outcome.status
        <DeliveryStatus.SUCCESS: 'success'>
    """

    def __init__(
        self,
        order_lookup: OrderLookup,
        audit_log: AuditLogStore,
        delivery_client: Optional[MatomoDeliveryClient] = None,
        config_loader: Callable[[], DeliveryConfig] = load_delivery_config,
        default_context: Optional[TrackingContext] = None,
        metrics_client: Optional[MetricsClient] = None
    ):
        """
        Initialize the tracker.

        Args:
            order_lookup: Resolves order ids to snapshots
            audit_log: Store receiving one entry per delivery attempt
            delivery_client: Matomo client, a new one by default
            config_loader: Called once per event to read the current config
            default_context: Context used when the caller supplies none
            metrics_client: Optional CloudWatch metrics publisher
        """
        self._order_lookup = order_lookup
        self._audit_log = audit_log
        self._delivery_client = delivery_client or MatomoDeliveryClient()
        self._config_loader = config_loader
        self._default_context = default_context or TrackingContext()
        self._metrics_client = metrics_client

    async def on_new_order(
        self,
        order_id: int,
        context: Optional[TrackingContext] = None
    ) -> TrackingResult:
        """Track a newly created order."""
        return await self._track(
            EventType.NEW_ORDER,
            order_id,
            TrackingEvent.new_order,
            context
        )

    async def on_order_status_changed(
        self,
        order_id: int,
        old_status: str,
        new_status: str,
        context: Optional[TrackingContext] = None
    ) -> TrackingResult:
        """Track an order status transition."""

        def build(order: OrderSnapshot) -> TrackingEvent:
            return TrackingEvent.status_change(order, old_status, new_status)

        logger.debug(
            "Order status changed",
            order_id=order_id,
            old_status=old_status,
            new_status=new_status
        )
        return await self._track(EventType.STATUS_CHANGE, order_id, build, context)

    async def _track(
        self,
        event_type: EventType,
        order_id: int,
        build_event: Callable[[OrderSnapshot], TrackingEvent],
        context: Optional[TrackingContext]
    ) -> TrackingResult:
        result = TrackingResult(order_id=order_id, event_type=event_type)

        with structlog.contextvars.bound_contextvars(
            order_id=order_id,
            event_type=event_type.value
        ):
            try:
                config = self._config_loader()
                if not config.tracking_enabled:
                    logger.debug("Tracking disabled, order event ignored")
                    result.outcome = DeliveryOutcome.skipped()
                    return result

                order = await self._order_lookup.get(order_id)
                if order is None:
                    logger.info("Order not found, event dropped")
                    result.outcome = DeliveryOutcome.order_not_found(order_id)
                    return result

                event = build_event(order)
                context = context or self._default_context

                if config.blocking:
                    return await self._deliver_and_record(config, event, context, result)

                task = asyncio.create_task(
                    self._deliver_and_record(config, event, context, result.model_copy())
                )
                _background_tasks.add(task)
                task.add_done_callback(_background_tasks.discard)

                logger.debug("Delivery dispatched to background task")
                result.dispatched = True
                return result

            except Exception as e:
                logger.error(
                    "Order event handling failed",
                    error=str(e),
                    error_type=type(e).__name__
                )
                result.error = f"{type(e).__name__}: {e}"
                return result

    async def _deliver_and_record(
        self,
        config: DeliveryConfig,
        event: TrackingEvent,
        context: TrackingContext,
        result: TrackingResult
    ) -> TrackingResult:
        """Deliver one event and record the attempt; never raises."""
        try:
            outcome = await self._delivery_client.deliver(config, event, context)
        except Exception as e:
            logger.error(
                "Event delivery failed",
                error=str(e),
                error_type=type(e).__name__
            )
            outcome = DeliveryOutcome(
                status=DeliveryStatus.TRANSPORT_ERROR,
                error_message=f"{type(e).__name__}: {e}"
            )

        result.outcome = outcome
        if not outcome.attempted:
            return result

        self._publish_metric(event, outcome)

        try:
            result.log_entry_id = await self._audit_log.record(
                event.order_id,
                event.event_type,
                event.event_data(),
                outcome
            )
        except StorageError as e:
            # The delivery already happened; it is neither retried nor undone
            logger.error(
                "Delivery log write failed",
                delivery_status=outcome.status.value,
                error=e.message
            )
            result.storage_error = e.message

        return result

    def _publish_metric(self, event: TrackingEvent, outcome: DeliveryOutcome) -> None:
        if self._metrics_client is None:
            return
        self._metrics_client.put_metric(
            DELIVERY_SUCCEEDED if outcome.succeeded else DELIVERY_FAILED,
            dimensions={'EventType': event.event_type.value}
        )


async def drain_background_deliveries() -> int:
    """
    Wait for all fire-and-forget deliveries to finish.

    Failures that escaped a background delivery are logged here.

    Returns:
        Number of deliveries that were still running
    """
    pending = list(_background_tasks)
    if pending:
        results = await asyncio.gather(*pending, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                logger.error(
                    "Background delivery failed",
                    error=str(result),
                    error_type=type(result).__name__
                )
    return len(pending)
