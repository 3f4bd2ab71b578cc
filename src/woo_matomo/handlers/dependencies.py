"""
Module: dependencies.py
Description: FastAPI dependencies shared by the route handlers.

Every request resolves a fresh Settings object, so configuration edits
apply to the next order event without a restart.
"""

import hmac
from typing import Optional

from fastapi import Depends, HTTPException, Security
from fastapi import status as status_codes
from fastapi.security import APIKeyHeader

from woo_matomo.config.settings import Settings, get_settings
from woo_matomo.orders.lookup import InMemoryOrderLookup, WooCommerceOrderLookup
from woo_matomo.models.delivery import TrackingContext
from woo_matomo.storage.audit_log import AuditLogStore
from woo_matomo.tracking.tracker import OrderEventTracker
from woo_matomo.utils.logger import get_logger
from woo_matomo.utils.metrics import MetricsClient

logger = get_logger(__name__)

admin_api_key_header = APIKeyHeader(name="X-Admin-API-Key", auto_error=False)


def get_audit_log(settings: Settings = Depends(get_settings)) -> AuditLogStore:
    """Dependency to get the DynamoDB audit log store."""
    return AuditLogStore(
        table_name=settings.logs_table_name,
        region_name=settings.aws_region
    )


def get_metrics_client(settings: Settings = Depends(get_settings)) -> Optional[MetricsClient]:
    """Dependency to get the CloudWatch metrics client, if enabled."""
    if not settings.metrics_enabled:
        return None
    return MetricsClient(region_name=settings.aws_region)


def get_tracker(
    settings: Settings = Depends(get_settings),
    audit_log: AuditLogStore = Depends(get_audit_log),
    metrics_client: Optional[MetricsClient] = Depends(get_metrics_client)
) -> OrderEventTracker:
    """
    Dependency to get an order event tracker wired to WooCommerce.

    With tracking disabled the store is never consulted, so a missing
    WooCommerce configuration is only an error while tracking is on.

    Raises:
        HTTPException: 503 if tracking is enabled and the store is not configured
    """
    if settings.woocommerce_url:
        order_lookup = WooCommerceOrderLookup(
            store_url=settings.woocommerce_url,
            consumer_key=settings.woocommerce_consumer_key,
            consumer_secret=settings.woocommerce_consumer_secret
        )
    elif not settings.tracking_enabled:
        # The tracker returns "skipped" before any lookup
        order_lookup = InMemoryOrderLookup()
    else:
        logger.error("WooCommerce store URL is not configured")
        raise HTTPException(
            status_code=status_codes.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Order lookup is not configured"
        )

    return OrderEventTracker(
        order_lookup=order_lookup,
        audit_log=audit_log,
        config_loader=settings.delivery_config,
        default_context=TrackingContext(url=settings.site_url),
        metrics_client=metrics_client
    )


async def verify_admin_api_key(
    api_key: Optional[str] = Security(admin_api_key_header),
    settings: Settings = Depends(get_settings)
) -> bool:
    """
    Check the X-Admin-API-Key header against the configured key.

    Raises:
        HTTPException: 503 if no key is configured, 403 if it does not match
    """
    if not settings.admin_api_key:
        logger.critical("Admin API key is not configured")
        raise HTTPException(
            status_code=status_codes.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Log access is not configured"
        )
    if not api_key or not hmac.compare_digest(api_key, settings.admin_api_key):
        logger.warning("Invalid or missing admin API key")
        raise HTTPException(
            status_code=status_codes.HTTP_403_FORBIDDEN,
            detail="Invalid or missing admin API key"
        )
    return True
