"""
Module: tasks/cleanup.py
Description: Scheduled Lambda that prunes expired delivery log entries.

Meant to be triggered by an external schedule (for example an
EventBridge rule running once a day). The retention horizon comes from
the log_retention_days setting unless the trigger event overrides it.
"""

import asyncio
from typing import Any, Dict

from woo_matomo.config.settings import get_settings
from woo_matomo.models.request import PruneRequest
from woo_matomo.storage.audit_log import AuditLogStore
from woo_matomo.utils.logger import get_logger
from woo_matomo.utils.metrics import LOGS_PRUNED, MetricsClient

logger = get_logger(__name__)


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for the scheduled log cleanup.

    Args:
        event: Scheduler event; an optional "retention_days" overrides the setting
        context: Lambda context

    Returns:
        Number of deleted entries and the retention used

    Raises:
        ValidationError: If "retention_days" is not a whole number of days in 1-365
        StorageError: If the log table cannot be pruned (the scheduler retries)
    """
    settings = get_settings()
    request = PruneRequest.model_validate(event or {})
    retention_days = request.retention_days or settings.log_retention_days

    store = AuditLogStore(
        table_name=settings.logs_table_name,
        region_name=settings.aws_region
    )
    deleted = asyncio.run(store.prune(retention_days))

    if settings.metrics_enabled:
        MetricsClient(region_name=settings.aws_region).put_metric(LOGS_PRUNED, float(deleted))

    logger.info(
        "Scheduled log cleanup finished",
        deleted=deleted,
        retention_days=retention_days,
        table_name=settings.logs_table_name
    )
    return {'deleted': deleted, 'retention_days': retention_days}
