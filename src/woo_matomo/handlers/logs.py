"""
Module: logs.py
Description: Delivery log endpoints for operators.

- GET /logs: paginated log listing with optional filters
- GET /logs/orders/{order_id}: every entry for one order
- POST /logs/prune: delete entries older than the retention horizon

All routes require the X-Admin-API-Key header.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from fastapi import status as status_codes

from woo_matomo.config.settings import Settings, get_settings
from woo_matomo.errors import StorageError
from woo_matomo.handlers.dependencies import get_audit_log, verify_admin_api_key
from woo_matomo.models.log_entry import EventType, LogEntry, LogStatus
from woo_matomo.models.request import PruneRequest
from woo_matomo.models.response import LogPageResponse, PruneResponse
from woo_matomo.storage.audit_log import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, AuditLogStore
from woo_matomo.utils.logger import get_logger

router = APIRouter(
    prefix="/logs",
    tags=["logs"],
    dependencies=[Depends(verify_admin_api_key)]
)
logger = get_logger(__name__)


def _unavailable(e: StorageError) -> HTTPException:
    return HTTPException(
        status_code=status_codes.HTTP_503_SERVICE_UNAVAILABLE,
        detail=e.message
    )


@router.get("", response_model=LogPageResponse)
async def list_logs(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    order_id: Optional[int] = Query(default=None, ge=1),
    event_type: Optional[EventType] = None,
    status: Optional[LogStatus] = None,
    audit_log: AuditLogStore = Depends(get_audit_log)
) -> LogPageResponse:
    """
    List delivery log entries, newest first.

    Example:
        GET /logs?page=2&per_page=20&status=error
    """
    try:
        result = await audit_log.fetch_page(
            page,
            per_page,
            order_id=order_id,
            event_type=event_type,
            status=status
        )
    except StorageError as e:
        raise _unavailable(e) from e

    return LogPageResponse.from_page(result)


@router.get("/orders/{order_id}", response_model=List[LogEntry])
async def get_order_logs(
    order_id: int = Path(..., ge=1),
    audit_log: AuditLogStore = Depends(get_audit_log)
) -> List[LogEntry]:
    """Every delivery log entry recorded for one order."""
    try:
        return await audit_log.get_order_logs(order_id)
    except StorageError as e:
        raise _unavailable(e) from e


@router.post("/prune", response_model=PruneResponse)
async def prune_logs(
    request: Optional[PruneRequest] = None,
    audit_log: AuditLogStore = Depends(get_audit_log),
    settings: Settings = Depends(get_settings)
) -> PruneResponse:
    """Delete log entries older than the retention horizon."""
    retention_days = (request.retention_days if request else None) or settings.log_retention_days

    try:
        deleted = await audit_log.prune(retention_days)
    except StorageError as e:
        raise _unavailable(e) from e

    logger.info("Manual log prune completed", deleted=deleted, retention_days=retention_days)
    return PruneResponse(deleted_count=deleted, retention_days=retention_days)
