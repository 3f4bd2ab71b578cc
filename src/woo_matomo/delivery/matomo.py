"""
Module: matomo.py
Description: Push delivery of order events to the Matomo collector.

Implements a single, non-retried HTTP POST to {matomo_url}/matomo.php
with a short timeout, and maps the result onto a DeliveryOutcome.
Only HTTP 200 counts as success; the response body is ignored.
"""

import time
from typing import Optional

import httpx

from woo_matomo.delivery.payload import build_tracking_params
from woo_matomo.models.delivery import (
    DeliveryConfig,
    DeliveryOutcome,
    DeliveryStatus,
    TrackingContext,
)
from woo_matomo.models.event import TrackingEvent
from woo_matomo.utils.logger import get_logger

logger = get_logger(__name__)


class MatomoDeliveryClient:
    """
    HTTP client for pushing tracking events to Matomo.

    Holds no state between calls: every delivery opens its own
    connection, so one instance may serve concurrent order events.
    """

    async def deliver(
        self,
        config: DeliveryConfig,
        event: TrackingEvent,
        context: Optional[TrackingContext] = None
    ) -> DeliveryOutcome:
        """
        Deliver an event to Matomo via HTTP POST.

        Args:
            config: Collector configuration for this invocation
            event: Event to deliver
            context: Ambient page/user context

        Returns:
            DeliveryOutcome describing what happened
        """
        if not config.tracking_enabled:
            logger.debug("Tracking disabled, delivery skipped", order_id=event.order_id)
            return DeliveryOutcome.skipped()

        missing = config.missing_fields()
        if missing:
            logger.warning(
                "Matomo delivery not configured, event skipped",
                order_id=event.order_id,
                missing_fields=missing
            )
            return DeliveryOutcome.unconfigured(missing)

        url = config.endpoint_url
        params = build_tracking_params(config, event, context)
        timeout = httpx.Timeout(config.timeout_seconds)

        logger.debug(
            "Attempting event delivery",
            order_id=event.order_id,
            event_type=event.event_type.value,
            collector_url=url
        )

        started = time.perf_counter()
        async with httpx.AsyncClient(timeout=timeout) as client:
            try:
                response = await client.post(url, data=params)

            except httpx.TimeoutException:
                logger.warning(
                    "Event delivery timeout",
                    order_id=event.order_id,
                    collector_url=url,
                    timeout_seconds=config.timeout_seconds
                )
                return DeliveryOutcome(
                    status=DeliveryStatus.TRANSPORT_ERROR,
                    error_message=f"Request timed out after {config.timeout_seconds:g}s"
                )

            except httpx.TransportError as e:
                logger.warning(
                    "Event delivery network error",
                    order_id=event.order_id,
                    collector_url=url,
                    error=str(e),
                    error_type=type(e).__name__
                )
                return DeliveryOutcome(
                    status=DeliveryStatus.TRANSPORT_ERROR,
                    error_message=f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
                )

        elapsed_ms = (time.perf_counter() - started) * 1000

        if response.status_code != 200:
            logger.warning(
                "Event delivery HTTP error",
                order_id=event.order_id,
                status_code=response.status_code,
                response=response.text[:500]  # Truncate large responses
            )
            return DeliveryOutcome(
                status=DeliveryStatus.HTTP_ERROR,
                status_code=response.status_code,
                error_message=f"Matomo responded with HTTP {response.status_code}",
                elapsed_ms=elapsed_ms
            )

        logger.info(
            "Event delivered successfully",
            order_id=event.order_id,
            event_type=event.event_type.value,
            status_code=response.status_code,
            response_time_ms=elapsed_ms
        )
        return DeliveryOutcome(
            status=DeliveryStatus.SUCCESS,
            status_code=response.status_code,
            elapsed_ms=elapsed_ms
        )
